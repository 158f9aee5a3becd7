"""Adapter layer package for executing rules and loading custom rule plugins."""

from .executor import RuleExecutor
from .plugin_loader import (
    ENTRY_POINT_GROUP,
    PluginLoadError,
    load_entry_point_plugins,
    load_plugins,
)

__all__ = [
    "ENTRY_POINT_GROUP",
    "PluginLoadError",
    "RuleExecutor",
    "load_entry_point_plugins",
    "load_plugins",
]
