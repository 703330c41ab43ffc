"""
Plugin system: header parsing, validation, security classification,
registry, sandboxed loading, dependency resolution and lifecycle management.
"""

from .base import BasePlugin, PluginContext
from .manager import PluginManager
from .metadata import PluginMetadataParser
from .registry import PluginRegistry
from .security import SecurityClassifier
from .validator import PluginValidator

__all__ = [
    'BasePlugin',
    'PluginContext',
    'PluginManager',
    'PluginMetadataParser',
    'PluginRegistry',
    'SecurityClassifier',
    'PluginValidator',
]
