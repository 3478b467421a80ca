"""
Emulator Configuration Synthesizer

Rewrites the ui-emulator host application's descriptors so that it registers
and lazy-loads a given set of UI plugins, points its dev proxy at a Cloud
Director cell, and then starts the Angular dev server.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from ..common.config import EmulatorLayout
from ..common.json_files import load_json_config, store_json_config
from .plugin_descriptor import DiscoveredModule, PluginRegistration
from .plugin_discovery import PluginDiscovery, join_path

logger = logging.getLogger(__name__)


@dataclass
class VcdConfig:
    """Session used by the emulated console."""
    token: str
    cell_url: str


class SynthesisStatus(Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"


@dataclass
class SynthesisResult:
    """Outcome of rewriting the host descriptors."""
    status: SynthesisStatus
    registrations: List[PluginRegistration] = field(default_factory=list)
    cause: Optional[Exception] = None
    written: List[Path] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.status is SynthesisStatus.COMPLETE


class DevServerHandle:
    """Handle on the running dev server child process."""

    def __init__(self, process: subprocess.Popen, command: Sequence[str]):
        self.process = process
        self.command = list(command)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    def poll(self) -> Optional[int]:
        return self.process.poll()

    def wait(self, timeout: Optional[float] = None) -> int:
        """Block until the dev server exits and return its exit code."""
        return self.process.wait(timeout=timeout)

    def terminate(self) -> None:
        if self.process.poll() is None:
            self.process.terminate()


class UiEmulatorConfigurator:
    """
    Configures and serves the ui-emulator application hosting provided UI plugins.

    The four host descriptors are always written back, even when registering the
    plugins failed half way, so the host files are never left half read. Whether
    the dev server should still be started after such a failure is up to the
    caller, based on the returned SynthesisResult.
    """

    def __init__(self, layout: Optional[EmulatorLayout] = None,
                 discovery: Optional[PluginDiscovery] = None):
        self.layout = layout or EmulatorLayout()
        self.discovery = discovery or PluginDiscovery(self.layout.build_descriptor)

    def synthesize(self, host_root: Union[str, Path], elements_root_relative_path: str,
                   element_folder_names: Sequence[str], vcd_config: VcdConfig) -> SynthesisResult:
        """
        Rewrite the host descriptors to register the plugins.

        Args:
            host_root: root of the ui-emulator host application
            elements_root_relative_path: path, relative to host_root, of the folder holding the plugin folders
            element_folder_names: plugin folders, in registration order
            vcd_config: token and cell URL the emulated console talks to

        Returns:
            SynthesisResult: COMPLETE, or PARTIAL with the exception that interrupted the rewrite
        """
        layout = self.layout
        host_root = Path(host_root)
        env_dir = host_root / layout.env_dir

        angular_json = load_json_config(host_root, layout.build_descriptor)
        tsconfig_json = load_json_config(host_root, layout.ts_descriptor)
        environment = load_json_config(env_dir, layout.environment_descriptor)
        proxy_config = load_json_config(env_dir, layout.proxy_descriptor)

        registrations: List[PluginRegistration] = []
        cause: Optional[Exception] = None
        written: List[Path] = []
        try:
            logger.info("Setting auth token")
            environment["credentials"] = {
                "token": f"Bearer {vcd_config.token}"
            }

            logger.info("Updating proxy config")
            for entry in self._proxy_entries(proxy_config):
                entry["target"] = vcd_config.cell_url

            logger.info("Updating plugins")
            plugin_modules = self.discovery.discover_plugin_modules(
                host_root, elements_root_relative_path, list(element_folder_names)
            )
            registrations = [self._registration(pm) for pm in plugin_modules]

            logger.info(f"Updating {layout.build_descriptor}")
            options = angular_json["projects"][layout.build_project]["architect"]["build"]["options"]
            options["assets"] = [layout.favicon] + [self._asset_rule(pm) for pm in plugin_modules]
            options["lazyModules"] = [join_path(self._plugin_root(pm), pm.file) for pm in plugin_modules]

            logger.info(f"Updating {layout.ts_descriptor}")
            tsconfig_json["include"] = [
                layout.runtime_config_glob,
                layout.host_source_glob,
            ] + [join_path(self._plugin_root(pm), "**", "*.ts") for pm in plugin_modules]
        except Exception as e:
            logger.error(f"Error configuring environment: {e}", exc_info=True)
            cause = e
        finally:
            written.append(store_json_config(env_dir, layout.environment_runtime, environment))
            written.append(store_json_config(env_dir, layout.proxy_runtime, proxy_config))
            written.append(store_json_config(
                env_dir, layout.plugins_file, [r.to_dict() for r in registrations]
            ))
            written.append(store_json_config(host_root, layout.build_descriptor, angular_json))
            written.append(store_json_config(host_root, layout.ts_descriptor, tsconfig_json))

        status = SynthesisStatus.COMPLETE if cause is None else SynthesisStatus.PARTIAL
        return SynthesisResult(status=status, registrations=registrations, cause=cause, written=written)

    def launch_dev_server(self, host_root: Union[str, Path],
                          extra_args: Optional[Sequence[str]] = None) -> DevServerHandle:
        """Start the dev server in host_root with inherited stdio; does not wait for it."""
        command = list(self.layout.dev_server_command) + list(extra_args or [])
        logger.info(f"Starting dev server: {' '.join(command)}")
        process = subprocess.Popen(command, cwd=str(host_root))
        return DevServerHandle(process, command)

    def serve(self, host_root: Union[str, Path], elements_root_relative_path: str,
              element_folder_names: Sequence[str], vcd_config: VcdConfig,
              extra_args: Optional[Sequence[str]] = None,
              launch_on_partial: bool = True) -> Tuple[SynthesisResult, Optional[DevServerHandle]]:
        """Synthesize the host configuration, then start the dev server."""
        result = self.synthesize(host_root, elements_root_relative_path, element_folder_names, vcd_config)
        if not result.complete and not launch_on_partial:
            logger.warning("Configuration is incomplete, dev server not started")
            return result, None
        return result, self.launch_dev_server(host_root, extra_args)

    @staticmethod
    def _proxy_entries(proxy_config: Any) -> List[Any]:
        """Proxy rules, whether keyed by context path or given as an array."""
        if isinstance(proxy_config, dict):
            return list(proxy_config.values())
        return list(proxy_config)

    @staticmethod
    def _plugin_root(pm: DiscoveredModule) -> str:
        return join_path(pm.elements_root_relative_path, pm.src_root)

    def _registration(self, pm: DiscoveredModule) -> PluginRegistration:
        return PluginRegistration(
            label=pm.module,
            root=self._plugin_root(pm),
            module=f"{pm.file}#{pm.module}",
            assets_path=join_path(pm.src_root, "public/assets")
        )

    def _asset_rule(self, pm: DiscoveredModule) -> Any:
        return {
            "glob": "**/*",
            "input": f"./{self._plugin_root(pm)}/public",
            "output": f"/{pm.src_root}/public"
        }
