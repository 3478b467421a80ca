"""
Tests for the authentication configuration selector.
"""

import sys
from pathlib import Path
from unittest.mock import Mock

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vcd_emulators.auth import AuthConfigSelector, AuthProfile, UnauthorizedReason


def make_profile(alias="dev", authorized=True, reason=None, current=False, token="token", certificate=None):
    return AuthProfile(
        alias=alias,
        username="admin",
        org="System",
        base_path="https://vcd.example.com",
        session_token=token,
        authorized=authorized,
        certificate=certificate,
        reason=reason,
        current=current,
    )


class TestUse:
    """Test selecting the current profile."""

    def setup_method(self):
        self.client = Mock()
        self.prompter = Mock()
        self.selector = AuthConfigSelector(client=self.client, prompter=self.prompter)

    def test_no_profiles_returns_none(self):
        self.client.get_configurations.return_value = []

        assert self.selector.use("profiles.json") is None
        self.prompter.prompt.assert_not_called()
        self.client.use.assert_not_called()

    def test_prompt_defaults_to_current_alias(self):
        self.client.get_configurations.return_value = [
            make_profile("dev"), make_profile("prod", current=True)
        ]
        self.prompter.prompt.return_value = {"alias": "dev"}
        self.client.from_file.return_value = make_profile("dev", current=True)

        self.selector.use("profiles.json")

        question = self.prompter.prompt.call_args[0][0][0]
        assert question["type"] == "list"
        assert question["choices"] == ["dev", "prod"]
        assert question["default"] == "prod"

    def test_selected_alias_marked_active_and_returned(self):
        self.client.get_configurations.return_value = [make_profile("dev"), make_profile("prod")]
        self.prompter.prompt.return_value = {"alias": "prod"}
        selected = make_profile("prod", current=True)
        self.client.from_file.return_value = selected

        result = self.selector.use("profiles.json")

        self.client.use.assert_called_once_with("prod", "profiles.json")
        assert result is selected


class TestGetCloudDirectorConfig:
    """Test loading the current profile and refreshing expired sessions."""

    def setup_method(self):
        self.client = Mock()
        self.prompter = Mock()
        self.selector = AuthConfigSelector(client=self.client, prompter=self.prompter)

    def test_authorized_profile_returned_without_prompt(self):
        profile = make_profile()
        self.client.from_file.return_value = profile

        assert self.selector.get_cloud_director_config() is profile
        self.prompter.prompt.assert_not_called()

    def test_no_current_profile(self):
        self.client.from_file.return_value = None

        assert self.selector.get_cloud_director_config() is None

    def test_expired_token_prompts_once_and_reauthenticates(self):
        self.client.from_file.return_value = make_profile(
            authorized=False, reason=UnauthorizedReason.TOKEN_EXPIRED, certificate="PEM"
        )
        self.prompter.prompt.return_value = {"password": "secret"}
        refreshed = make_profile(alias="", token="fresh")
        self.client.with_username_and_password.return_value = refreshed

        result = self.selector.get_cloud_director_config("profiles.json")

        assert self.prompter.prompt.call_count == 1
        assert self.prompter.prompt.call_args[0][0][0]["type"] == "password"
        self.client.with_username_and_password.assert_called_once_with(
            "https://vcd.example.com", "admin", "System", "secret", certificate="PEM"
        )
        self.client.save_config.assert_called_once_with(refreshed, "dev", "profiles.json")
        assert result is refreshed
        assert result.alias == "dev"

    def test_other_reasons_returned_unchanged(self):
        for reason in (UnauthorizedReason.CERTIFICATE_UNTRUSTED,
                       UnauthorizedReason.INVALID_CREDENTIALS,
                       UnauthorizedReason.NOT_LOGGED_IN):
            profile = make_profile(authorized=False, reason=reason)
            self.client.from_file.return_value = profile

            assert self.selector.get_cloud_director_config() is profile

        self.prompter.prompt.assert_not_called()
        self.client.with_username_and_password.assert_not_called()
        self.client.save_config.assert_not_called()


class TestLoginAndStore:
    """Test logging in and storing profiles."""

    def setup_method(self):
        self.client = Mock()
        self.prompter = Mock()
        self.output = Mock()
        self.selector = AuthConfigSelector(client=self.client, prompter=self.prompter, output_func=self.output)

    def test_successful_login_stored(self):
        connection = make_profile(alias="")
        self.client.with_username_and_password.return_value = connection

        result = self.selector.login_and_store("dev", "https://vcd.example.com", "admin", "System", "pw", "f.json")

        self.client.with_username_and_password.assert_called_once_with(
            "https://vcd.example.com", "admin", "System", "pw"
        )
        self.client.save_config.assert_called_once_with(connection, "dev", "f.json")
        self.prompter.prompt.assert_not_called()
        assert result.authorized

    def test_untrusted_certificate_accepted(self):
        untrusted = make_profile(alias="", authorized=False, token=None,
                                 reason=UnauthorizedReason.CERTIFICATE_UNTRUSTED, certificate="PEM")
        pinned = make_profile(alias="", certificate="PEM")
        self.client.with_username_and_password.side_effect = [untrusted, pinned]
        self.prompter.prompt.return_value = {"trust": True}

        result = self.selector.login_and_store("dev", "https://vcd.example.com", "admin", "System", "pw")

        self.output.assert_any_call("PEM")
        assert self.prompter.prompt.call_args[0][0][0]["type"] == "confirm"
        assert result is pinned
        assert result.authorized is True
        assert result.reason is None
        self.client.save_config.assert_called_once_with(pinned, "dev", None)

    def test_untrusted_certificate_rejected_still_stored(self):
        untrusted = make_profile(alias="", authorized=False, token=None,
                                 reason=UnauthorizedReason.CERTIFICATE_UNTRUSTED, certificate="PEM")
        self.client.with_username_and_password.return_value = untrusted
        self.prompter.prompt.return_value = {"trust": False}

        result = self.selector.login_and_store("dev", "https://vcd.example.com", "admin", "System", "pw")

        assert result.authorized is False
        assert self.client.with_username_and_password.call_count == 1
        self.client.save_config.assert_called_once_with(untrusted, "dev", None)

    def test_decision_overrides_client_verdict(self):
        untrusted = make_profile(alias="", authorized=False, token=None,
                                 reason=UnauthorizedReason.CERTIFICATE_UNTRUSTED, certificate="PEM")
        still_failing = make_profile(alias="", authorized=False, token=None,
                                     reason=UnauthorizedReason.CERTIFICATE_UNTRUSTED, certificate="PEM")
        self.client.with_username_and_password.side_effect = [untrusted, still_failing]
        self.prompter.prompt.return_value = {"trust": True}

        result = self.selector.login_and_store("dev", "https://vcd.example.com", "admin", "System", "pw")

        assert result.authorized is True

    def test_invalid_credentials_stored_without_prompt(self):
        rejected = make_profile(alias="", authorized=False, token=None,
                                reason=UnauthorizedReason.INVALID_CREDENTIALS)
        self.client.with_username_and_password.return_value = rejected

        result = self.selector.login_and_store("dev", "https://vcd.example.com", "admin", "System", "bad")

        self.prompter.prompt.assert_not_called()
        self.client.save_config.assert_called_once_with(rejected, "dev", None)
        assert result.authorized is False
