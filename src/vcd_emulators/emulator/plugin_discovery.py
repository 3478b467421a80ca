"""
Plugin Discovery Module

Resolves plugin folders to the Angular module entry point declared in each
plugin's own angular.json.
"""

import logging
import posixpath
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..common.exceptions import PluginError
from ..common.json_files import load_json_config
from .plugin_descriptor import DiscoveredModule, PluginDescriptor

logger = logging.getLogger(__name__)

MODULE_SEPARATOR = "#"


def join_path(*parts: str) -> str:
    """Join and normalize forward-slash path fragments, ignoring empty ones."""
    return posixpath.normpath(posixpath.join(*[p for p in parts if p] or [""]))


class PluginDiscovery:
    """Turns plugin folder names into discovered module entry points."""

    def __init__(self, build_descriptor: str = "angular.json"):
        self.build_descriptor = build_descriptor

    def describe(self, host_root: Union[str, Path], elements_root_relative_path: str,
                 folder_name: str) -> PluginDescriptor:
        build_project_path = Path(host_root) / elements_root_relative_path / folder_name
        return PluginDescriptor(folder_name=folder_name, build_project_path=build_project_path)

    def discover_plugin_module(self, host_root: Union[str, Path], elements_root_relative_path: str,
                               folder_name: str) -> DiscoveredModule:
        """
        Resolve one plugin folder to its module file and exported symbol.

        The ``modulePath`` build option of the default project has the form
        ``<prefix>/<file>#<symbol>``; the prefix segment is dropped and a single
        trailing extension is stripped from the file.

        Raises:
            PluginError: If the descriptor, the default project or a well formed
                ``modulePath`` is missing.
        """
        descriptor = self.describe(host_root, elements_root_relative_path, folder_name)
        descriptor_path = descriptor.build_project_path / self.build_descriptor

        angular_json = load_json_config(descriptor.build_project_path, self.build_descriptor)
        if angular_json is None:
            raise PluginError(
                f"Build descriptor not found for plugin {folder_name}",
                plugin_folder=folder_name,
                descriptor_path=str(descriptor_path)
            )

        module_path = self._resolve_module_path(angular_json, folder_name, str(descriptor_path))

        file_and_module = "/".join(module_path.split("/")[1:])
        tokens = file_and_module.split(MODULE_SEPARATOR)
        if len(tokens) < 2:
            raise PluginError(
                f"modulePath '{module_path}' has no '{MODULE_SEPARATOR}' separator",
                plugin_folder=folder_name,
                descriptor_path=str(descriptor_path)
            )

        file = posixpath.splitext(tokens[0])[0]
        module = tokens[1]
        src_root = join_path(folder_name, "src")

        logger.debug(f"Discovered module {module} in {file}", extra={"plugin_folder": folder_name})
        return DiscoveredModule(
            elements_root_relative_path=elements_root_relative_path,
            src_root=src_root,
            file=file,
            module=module
        )

    def discover_plugin_modules(self, host_root: Union[str, Path], elements_root_relative_path: str,
                                folder_names: List[str]) -> List[DiscoveredModule]:
        """Discover every folder, keeping the caller's order."""
        return [
            self.discover_plugin_module(host_root, elements_root_relative_path, folder_name)
            for folder_name in folder_names
        ]

    @staticmethod
    def _resolve_module_path(angular_json: Dict[str, Any], folder_name: str, descriptor_path: str) -> str:
        default_project: Optional[str] = angular_json.get("defaultProject")
        project = (angular_json.get("projects") or {}).get(default_project) if default_project else None
        if project is None:
            raise PluginError(
                f"Default project '{default_project}' not declared for plugin {folder_name}",
                plugin_folder=folder_name,
                descriptor_path=descriptor_path
            )

        try:
            module_path = project["architect"]["build"]["options"]["modulePath"]
        except (KeyError, TypeError) as e:
            raise PluginError(
                f"No modulePath build option for plugin {folder_name}",
                plugin_folder=folder_name,
                descriptor_path=descriptor_path,
                cause=e
            ) from e

        if not isinstance(module_path, str):
            raise PluginError(
                f"modulePath of plugin {folder_name} is not a string",
                plugin_folder=folder_name,
                descriptor_path=descriptor_path
            )
        return module_path
