"""
Plugin Descriptor Module

Defines the data structures describing plugin folders, the modules discovered
in them and the registrations persisted for the ui-emulator host application.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass
class PluginDescriptor:
    """A plugin folder as requested by the caller."""
    folder_name: str
    build_project_path: Path


@dataclass
class DiscoveredModule:
    """Module entry point resolved from a plugin's own angular.json."""
    elements_root_relative_path: str
    src_root: str
    file: str
    module: str


@dataclass
class PluginRegistration:
    """Entry of the generated plugins.json read by the host application."""
    label: str
    root: str
    module: str
    assets_path: str

    @property
    def path(self) -> Optional[str]:
        """Exported symbol half of ``module``; None when there is no separator."""
        parts = self.module.split('#')
        return parts[1] if len(parts) > 1 else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "root": self.root,
            "module": self.module,
            "assetsPath": self.assets_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PluginRegistration":
        # plugins.json files written before assets were served carry no assetsPath
        return cls(
            label=data["label"],
            root=data["root"],
            module=data["module"],
            assets_path=data.get("assetsPath", ""),
        )


def load_plugin_registrations(plugins_file: Union[str, Path]) -> List[PluginRegistration]:
    """Read back the registrations persisted by the synthesizer."""
    with open(plugins_file, "r", encoding="utf-8") as f:
        data = json.load(f) or []
    return [PluginRegistration.from_dict(entry) for entry in data]
