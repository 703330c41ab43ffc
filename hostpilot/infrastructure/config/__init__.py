"""
Configuration infrastructure: dataclass models and the file/environment loader.
"""

from .models import ApplicationConfig, LoggingConfig, PluginConfig, ExecutionConfig
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "LoggingConfig",
    "PluginConfig",
    "ExecutionConfig",
    "ConfigLoader",
]
