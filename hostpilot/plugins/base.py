"""
Base plugin classes and utilities.

Plugin authors subclass :class:`BasePlugin` and override the ``on_*`` hooks;
the lifecycle manager only ever talks to the public ``IPlugin`` surface.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from ..core.interfaces.plugins import IPlugin, IPluginContext


class BasePlugin(IPlugin):
    """
    Base plugin class providing common functionality.

    Subclasses set ``name``, ``version`` and optionally ``category`` as class
    attributes and override the hook methods they need.
    """

    name: str = ""
    version: str = "1.0.0"
    category: Optional[str] = None

    def __init__(self) -> None:
        self._context: Optional[IPluginContext] = None
        self._initialized = False
        self._logger: Any = None

    @property
    def context(self) -> Optional[IPluginContext]:
        return self._context

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def logger(self) -> Any:
        if self._logger is None:
            if self._context is not None:
                self._logger = self._context.get_logger(self.plugin_name)
            else:
                return logger.bind(component=f"plugin.{self.plugin_name}")
        return self._logger

    @property
    def plugin_name(self) -> str:
        return self.name or self.__class__.__name__

    async def initialize(self, context: IPluginContext) -> Optional[bool]:
        """Initialize the plugin with context."""
        self._context = context
        self._logger = context.get_logger(self.plugin_name)

        self.logger.debug(f"Initializing plugin: {self.plugin_name}")
        result = await self.on_initialize()
        if result is False:
            return False
        self._initialized = True
        return True

    async def shutdown(self) -> None:
        """Shutdown the plugin."""
        if not self._initialized:
            return
        await self.on_shutdown()
        self._initialized = False
        self._context = None
        self._logger = None

    async def health_check(self) -> Dict[str, Any]:
        health_info = await self.on_health_check()
        return {
            'healthy': health_info.get('healthy', True) and self._initialized,
            'details': {
                'name': self.plugin_name,
                'version': self.version,
                **health_info.get('details', {})
            }
        }

    def get_info(self) -> Dict[str, Any]:
        return {
            'name': self.plugin_name,
            'version': self.version,
            'category': self.category,
        }

    # Hook methods for subclasses to override

    async def on_initialize(self) -> Optional[bool]:
        """Called when plugin is initialized with context."""
        return None

    async def on_shutdown(self) -> None:
        """Called when plugin is unloaded."""
        pass

    async def on_health_check(self) -> Dict[str, Any]:
        """Called during health checks."""
        return {'healthy': True, 'details': {}}

    def get_config(self, key: str, default: Any = None) -> Any:
        if self._context:
            return self._context.get_config(key, default)
        return default


class PluginContext(IPluginContext):
    """
    Plugin execution context implementation.

    Gives a plugin read-only access to its configuration and a logger bound
    to its name and the current session.
    """

    def __init__(self, plugin_id: str, plugin_name: str,
                 configuration: Optional[Mapping[str, Any]] = None,
                 session_id: Optional[str] = None,
                 dependencies: Optional[List[str]] = None) -> None:
        self._plugin_id = plugin_id
        self._plugin_name = plugin_name
        self._configuration = MappingProxyType(dict(configuration or {}))
        self._session_id = session_id
        self._dependencies = list(dependencies or [])

    @property
    def plugin_id(self) -> str:
        return self._plugin_id

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def dependencies(self) -> List[str]:
        return list(self._dependencies)

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._configuration.get(key, default)

    def get_logger(self, name: Optional[str] = None) -> Any:
        return logger.bind(
            component=f"plugin.{name or self._plugin_name}",
            plugin_id=self._plugin_id,
            session_id=self._session_id,
        )
