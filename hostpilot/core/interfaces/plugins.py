"""
Plugin system interfaces.

``IPlugin`` is the minimal capability every plugin provides; the named
interface contracts in :mod:`hostpilot.core.interfaces.contracts` add the
methods a plugin of a given kind must expose on top of it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union, Awaitable


class IPluginContext(ABC):
    """Interface for the context handed to a plugin at initialization."""

    @property
    @abstractmethod
    def plugin_id(self) -> str:
        """Registry id of the plugin this context belongs to."""
        pass

    @property
    @abstractmethod
    def session_id(self) -> Optional[str]:
        """Correlation id of the current orchestration run."""
        pass

    @abstractmethod
    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value for the plugin.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        pass

    @abstractmethod
    def get_logger(self, name: Optional[str] = None) -> Any:
        """
        Get a logger bound to the plugin.

        Args:
            name: Logger name (defaults to plugin name)

        Returns:
            Logger instance
        """
        pass


class IPlugin(ABC):
    """Interface every plugin implementation satisfies."""

    @abstractmethod
    def initialize(self, context: IPluginContext) -> Union[Optional[bool], Awaitable[Optional[bool]]]:
        """
        Initialize the plugin with the given context.

        May be a coroutine function. Returning ``False`` explicitly marks
        the initialization as failed; ``None`` or ``True`` is success.
        """
        pass

    @abstractmethod
    def get_info(self) -> Dict[str, Any]:
        """
        Get self-reported plugin information.

        Returns:
            Dictionary with at least ``name`` and ``version``
        """
        pass
