"""
UI plugin emulation for the ui-emulator host application.

This package resolves UI plugin folders to their Angular modules and rewrites
the host application's configuration so it serves them against a Cloud
Director cell.
"""

from .plugin_descriptor import (
    DiscoveredModule,
    PluginDescriptor,
    PluginRegistration,
    load_plugin_registrations,
)
from .plugin_discovery import PluginDiscovery
from .synthesizer import (
    DevServerHandle,
    SynthesisResult,
    SynthesisStatus,
    UiEmulatorConfigurator,
    VcdConfig,
)

__all__ = [
    'DiscoveredModule',
    'PluginDescriptor',
    'PluginRegistration',
    'load_plugin_registrations',
    'PluginDiscovery',
    'DevServerHandle',
    'SynthesisResult',
    'SynthesisStatus',
    'UiEmulatorConfigurator',
    'VcdConfig',
]
