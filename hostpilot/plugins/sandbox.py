"""
Plugin module loading with an optional import sandbox.

Plugins are loaded as fresh module objects that are never inserted into
``sys.modules``. In sandbox mode the module gets its own copy of the
builtins whose ``__import__`` refuses blocked modules, so the restriction
applies to that plugin only and the interpreter-wide importer is untouched.
"""

import builtins
import importlib.util
import inspect
import types
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Set

from loguru import logger

from ..core.exceptions import PluginLoadError
from ..core.interfaces.plugins import IPlugin

log = logger.bind(component="Sandbox")

DEFAULT_BLOCKED_MODULES: Set[str] = {
    'subprocess', 'socket', 'ctypes', 'pty', 'multiprocessing',
}


class RestrictedImporter:
    """
    Import hook that refuses blocked modules and their submodules.
    """

    def __init__(self, blocked_modules: Optional[Iterable[str]] = None,
                 original_import: Optional[Callable[..., types.ModuleType]] = None):
        self.blocked_modules: Set[str] = set(blocked_modules) if blocked_modules is not None else set(DEFAULT_BLOCKED_MODULES)
        self._original_import = original_import or builtins.__import__

    def is_blocked(self, name: str) -> bool:
        if name in self.blocked_modules:
            return True

        parts = name.split('.')
        for i in range(1, len(parts)):
            if '.'.join(parts[:i]) in self.blocked_modules:
                return True

        return False

    def __call__(self, name: str, globals: Optional[Dict[str, Any]] = None,
                 locals: Optional[Dict[str, Any]] = None, fromlist: Any = (), level: int = 0) -> types.ModuleType:
        if level == 0 and self.is_blocked(name):
            log.warning(f"Blocked import of module '{name}'")
            raise ImportError(f"Module '{name}' is not allowed in the sandbox")
        return self._original_import(name, globals, locals, fromlist, level)


def sandboxed_builtins(importer: RestrictedImporter) -> Dict[str, Any]:
    """Copy of the builtins namespace with the restricted importer installed."""
    namespace = dict(vars(builtins))
    namespace['__import__'] = importer
    return namespace


def load_plugin_module(file_path: str, module_name: str, sandbox: bool = False,
                       blocked_modules: Optional[Iterable[str]] = None) -> types.ModuleType:
    """
    Execute a plugin file into a new module object.

    Raises:
        PluginLoadError: If the file cannot be loaded or raises while executing
    """
    path = Path(file_path)
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if not spec or not spec.loader:
        raise PluginLoadError(f"Cannot load plugin from {file_path}")

    module = importlib.util.module_from_spec(spec)
    if sandbox:
        module.__dict__['__builtins__'] = sandboxed_builtins(RestrictedImporter(blocked_modules))

    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise PluginLoadError(f"Error executing plugin module {file_path}: {e}") from e

    return module


def find_plugin_class(module: types.ModuleType) -> Optional[type]:
    """
    Find the plugin class defined by a module.

    Prefers concrete ``IPlugin`` subclasses defined in the module itself,
    then any class defined there that exposes ``initialize`` and ``get_info``.
    """
    fallback: Optional[type] = None
    for attr_name in dir(module):
        attr = getattr(module, attr_name)
        if not inspect.isclass(attr) or getattr(attr, '__module__', None) != module.__name__:
            continue
        if issubclass(attr, IPlugin) and not inspect.isabstract(attr):
            return attr
        if fallback is None and callable(getattr(attr, 'initialize', None)) \
                and callable(getattr(attr, 'get_info', None)):
            fallback = attr
    return fallback


def instantiate_plugin(module: types.ModuleType) -> Any:
    """
    Create the runtime plugin object exported by a module.

    A module without a plugin class is itself the runtime unit, so plain
    function-style plugins expose their module-level functions.
    """
    plugin_class = find_plugin_class(module)
    if plugin_class is None:
        return module
    try:
        return plugin_class()
    except Exception as e:
        raise PluginLoadError(f"Cannot instantiate {plugin_class.__name__}: {e}") from e
