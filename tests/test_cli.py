"""
Tests for the vcd-emulators command line.
"""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vcd_emulators import cli
from vcd_emulators.auth import AuthProfile, UnauthorizedReason
from vcd_emulators.common.logging_setup import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery and logging setup from leaking between tests."""
    monkeypatch.chdir(tmp_path)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    logger.handlers, level, logger.propagate = saved
    logger.setLevel(level)


def write_json(path: Path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(content, indent=2))


def make_host(root: Path, module_path="src/main/subscribe.module.ts#SubscribeModule"):
    write_json(root / "angular.json", {
        "projects": {"emulator": {"architect": {"build": {"options": {"assets": []}}}}}
    })
    write_json(root / "tsconfig.emulator.json", {"compilerOptions": {}, "include": []})
    write_json(root / ".env" / "environment.json", {"production": False})
    write_json(root / ".env" / "proxy.conf.json", {"/api": {"target": "", "secure": False}})
    write_json(root / "plugins" / "subscribe" / "angular.json", {
        "projects": {"plugin": {"architect": {"build": {"options": {"modulePath": module_path}}}}},
        "defaultProject": "plugin",
    })
    return root


class TestServe:
    """Test the serve command."""

    def test_configures_host_and_starts_dev_server(self, tmp_path):
        host = make_host(tmp_path / "host")
        process = MagicMock()
        process.wait.return_value = 0

        with patch("vcd_emulators.emulator.synthesizer.subprocess.Popen", return_value=process) as popen:
            code = cli.main([
                "serve", "--host-root", str(host), "--plugins-root", "plugins", "--plugin", "subscribe",
                "--token", "jwt", "--cell-url", "https://vcd.example.com", "--", "--port", "4300"
            ])

        assert code == 0
        popen.assert_called_once_with(["ng", "serve", "--port", "4300"], cwd=str(host))
        environment = json.loads((host / ".env" / "environment.runtime.json").read_text())
        assert environment["credentials"] == {"token": "Bearer jwt"}
        plugins = json.loads((host / ".env" / "plugins.json").read_text())
        assert plugins[0]["module"] == "main/subscribe.module#SubscribeModule"

    def test_partial_configuration_not_served_when_asked(self, tmp_path):
        host = make_host(tmp_path / "host", module_path="src/main/no-separator")

        with patch("vcd_emulators.emulator.synthesizer.subprocess.Popen") as popen:
            code = cli.main([
                "serve", "--host-root", str(host), "--plugins-root", "plugins", "--plugin", "subscribe",
                "--token", "jwt", "--cell-url", "https://vcd.example.com", "--no-launch-on-partial"
            ])

        assert code == 1
        popen.assert_not_called()
        assert (host / ".env" / "plugins.json").read_text() == "[]"

    def test_interrupt_terminates_dev_server(self, tmp_path):
        host = make_host(tmp_path / "host")
        process = MagicMock()
        process.wait.side_effect = KeyboardInterrupt
        process.poll.return_value = None

        with patch("vcd_emulators.emulator.synthesizer.subprocess.Popen", return_value=process):
            code = cli.main([
                "serve", "--host-root", str(host), "--plugins-root", "plugins", "--plugin", "subscribe",
                "--token", "jwt", "--cell-url", "https://vcd.example.com"
            ])

        assert code == 130
        process.terminate.assert_called_once()

    def test_session_taken_from_current_profile(self, tmp_path):
        selector = Mock()
        selector.get_cloud_director_config.return_value = AuthProfile(
            alias="dev", username="admin", org="System", base_path="https://vcd.example.com",
            session_token="stored", authorized=True
        )
        args = cli.build_parser().parse_args([
            "serve", "--plugins-root", "plugins", "--plugin", "subscribe"
        ])

        config = cli._vcd_config(args, selector)

        assert config.token == "stored"
        assert config.cell_url == "https://vcd.example.com"

    def test_no_authorized_profile(self):
        selector = Mock()
        selector.get_cloud_director_config.return_value = AuthProfile(
            alias="dev", username="admin", org="System", base_path="https://vcd.example.com",
            authorized=False, reason=UnauthorizedReason.NOT_LOGGED_IN
        )
        args = cli.build_parser().parse_args([
            "serve", "--plugins-root", "plugins", "--plugin", "subscribe"
        ])

        assert cli.run_serve(args, selector) == 1


class TestDependencies:
    """Test the dependencies command."""

    def test_writes_report(self, tmp_path):
        write_json(tmp_path / "repo" / "package-lock.json", {
            "dependencies": {"a": {"resolved": "https://registry.npmjs.org/a/-/a-1.0.0.tgz"}}
        })
        output = tmp_path / "dependencies.json"

        code = cli.main(["dependencies", "--root", str(tmp_path / "repo"), "--output", str(output)])

        assert code == 0
        report = json.loads(output.read_text())
        assert report["all-components"]["artifact_repositories"][0]["host"] == "registry.npmjs.org"


class TestAuth:
    """Test the auth commands."""

    def test_login_uses_given_password(self):
        selector = Mock()
        selector.login_and_store.return_value = Mock(authorized=True)
        args = cli.build_parser().parse_args([
            "auth", "login", "dev", "--host", "https://vcd.example.com",
            "--user", "admin", "--org", "System", "--password", "pw"
        ])

        assert cli.run_auth(args, selector) == 0
        selector.login_and_store.assert_called_once_with(
            "dev", "https://vcd.example.com", "admin", "System", "pw", None
        )

    def test_use_without_profiles(self):
        selector = Mock()
        selector.use.return_value = None
        args = cli.build_parser().parse_args(["auth", "use"])

        assert cli.run_auth(args, selector) == 1

    def test_emulator_errors_reported_as_exit_code(self, tmp_path):
        code = cli.main(["serve", "--host-root", str(tmp_path), "--plugins-root", "plugins",
                         "--plugin", "x", "--token", "t", "--cell-url", "https://vcd.example.com",
                         "--layout", str(tmp_path / "missing.yaml")])

        assert code == 1
