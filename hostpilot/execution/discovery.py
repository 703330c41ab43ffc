"""
Module discovery for batch execution.

A module is a ``*.py`` file in the module directory whose stem is the module
name; it exposes ``invoke_<name>`` as its entry point.
"""

from pathlib import Path
from typing import Dict, Optional

from loguru import logger

log = logger.bind(component="ModuleDiscovery")

ENTRY_POINT_PREFIX = "invoke_"


def entry_point_name(module_name: str) -> str:
    return ENTRY_POINT_PREFIX + module_name.replace('-', '_')


class ModuleCatalog:
    """Name to path map of the modules found in a directory."""

    def __init__(self, modules: Optional[Dict[str, Path]] = None) -> None:
        self._modules: Dict[str, Path] = dict(modules or {})
        self._by_lower = {name.lower(): name for name in self._modules}

    @classmethod
    def scan(cls, directory: str) -> 'ModuleCatalog':
        module_dir = Path(directory)
        if not module_dir.is_dir():
            log.warning(f"Module directory does not exist: {directory}")
            return cls()

        modules = {
            path.stem: path
            for path in sorted(module_dir.glob("*.py"))
            if not path.name.startswith("_")
        }
        log.debug(f"Found {len(modules)} modules in {directory}")
        return cls(modules)

    def resolve(self, name: str) -> Optional[str]:
        """Canonical module name for ``name`` (case-insensitive), or None."""
        if name in self._modules:
            return name
        return self._by_lower.get(name.lower())

    def path_of(self, name: str) -> Path:
        return self._modules[name]

    def names(self):
        return sorted(self._modules)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._modules)
