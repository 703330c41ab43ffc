"""
Dependency resolution for plugin loading.

A dependency name resolves, in order, to an already active runtime unit, a
sibling plugin (started recursively after a cycle check), an importable
package, or, when auto-install is enabled, a freshly installed package.
"""

import asyncio
import importlib
import subprocess
import sys
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from ..core.domain.plugins import PluginStatus
from ..core.exceptions import (
    DependencyCycleError, DependencyError, DependencyUnresolvedError
)
from ..infrastructure.config.models import PluginConfig
from .registry import PluginRegistry

log = logger.bind(component="DependencyResolver")

StartCallback = Callable[[str], Awaitable[bool]]


def package_module_name(dependency_name: str) -> str:
    return dependency_name.strip().replace('-', '_')


class DependencyResolver:
    """Resolves plugin dependencies against the registry and the interpreter."""

    def __init__(self, registry: PluginRegistry, start_plugin: StartCallback,
                 is_active: Callable[[str], bool],
                 config: Optional[PluginConfig] = None) -> None:
        """
        Args:
            registry: Registry used for name to id lookups
            start_plugin: Coroutine starting a plugin by id, returns success
            is_active: Whether a name is a loaded plugin
            config: Plugin configuration (auto-install policy)
        """
        self._registry = registry
        self._start_plugin = start_plugin
        self._is_active = is_active
        self._config = config or PluginConfig()

    async def resolve(self, dependency_name: str, requesting_plugin_id: str) -> bool:
        """
        Resolve a dependency.

        Returns:
            True if the dependency is available afterwards. Failures are logged.
        """
        try:
            await self.ensure(dependency_name, requesting_plugin_id)
            return True
        except DependencyError as e:
            log.error(e.message)
            return False

    async def ensure(self, dependency_name: str, requesting_plugin_id: str) -> None:
        """
        Resolve a dependency or raise.

        Raises:
            DependencyCycleError: If the dependency leads back into a cycle
            DependencyUnresolvedError: If nothing provides the dependency
            DependencyError: If the dependency plugin fails to start
        """
        if self._is_active(dependency_name):
            log.debug(f"Dependency {dependency_name} already loaded")
            return

        entry = self._registry.find_by_name(dependency_name)
        if entry is not None and entry.status == PluginStatus.UNLOADED:
            log.debug(f"Dependency plugin {dependency_name} was unloaded, not reloading it")
            entry = None

        if entry is not None:
            chain = self.find_cycle(entry.id, requesting_plugin_id)
            if chain:
                raise DependencyCycleError(chain)

            if entry.status != PluginStatus.LOADED:
                log.info(f"Loading dependency plugin {dependency_name} for {self._name_of(requesting_plugin_id)}")
                if not await self._start_plugin(entry.id):
                    raise DependencyError(
                        f"Dependency plugin '{dependency_name}' failed to load: {entry.last_error}",
                        "DEPENDENCY_LOAD_FAILED")
            return

        if package_module_name(dependency_name) in sys.modules:
            log.debug(f"Dependency {dependency_name} already imported")
            return

        attempted = ["loaded plugin", "registered plugin", "import"]
        if self._import_package(dependency_name):
            return

        if self._config.auto_install:
            attempted.append("install")
            if await self._install_package(dependency_name) and self._import_package(dependency_name):
                return

        raise DependencyUnresolvedError(dependency_name, attempted)

    def find_cycle(self, start_id: str, requesting_plugin_id: str) -> Optional[List[str]]:
        """
        Depth-first search for a cycle reachable from ``start_id``.

        Each plugin id is expanded at most once, so the walk terminates in
        O(registry size) steps.

        Returns:
            The cycle as a list of plugin names, or None
        """
        if start_id == requesting_plugin_id:
            name = self._name_of(start_id)
            return [name, name]

        path: List[str] = [start_id]
        on_path = {start_id}
        visited = {start_id}
        stack = [(start_id, iter(self._dependencies_of(start_id)))]

        while stack:
            node_id, pending = stack[-1]
            dep_name = next(pending, None)
            if dep_name is None:
                stack.pop()
                path.pop()
                on_path.discard(node_id)
                continue

            dep_entry = self._registry.find_by_name(dep_name)
            if dep_entry is None:
                continue

            if dep_entry.id == requesting_plugin_id:
                return [self._name_of(requesting_plugin_id)] + \
                    [self._name_of(p) for p in path] + [dep_entry.name]

            if dep_entry.id in on_path:
                cycle_start = path.index(dep_entry.id)
                return [self._name_of(p) for p in path[cycle_start:]] + [dep_entry.name]

            if dep_entry.id in visited:
                continue

            visited.add(dep_entry.id)
            path.append(dep_entry.id)
            on_path.add(dep_entry.id)
            stack.append((dep_entry.id, iter(self._dependencies_of(dep_entry.id))))

        return None

    def _dependencies_of(self, plugin_id: str) -> List[str]:
        entry = self._registry.get(plugin_id)
        return list(entry.descriptor.dependencies) if entry else []

    def _name_of(self, plugin_id: str) -> str:
        entry = self._registry.get(plugin_id)
        return entry.name if entry else plugin_id

    def _import_package(self, dependency_name: str) -> bool:
        module_name = package_module_name(dependency_name)
        try:
            importlib.import_module(module_name)
            log.debug(f"Dependency {dependency_name} imported as package {module_name}")
            return True
        except ImportError:
            return False
        except Exception as e:
            log.warning(f"Importing dependency {dependency_name} raised: {e}")
            return False

    async def _install_package(self, dependency_name: str) -> bool:
        log.info(f"Installing dependency package {dependency_name}")
        loop = asyncio.get_running_loop()
        try:
            completed = await loop.run_in_executor(None, self._run_pip, dependency_name)
        except (OSError, subprocess.SubprocessError) as e:
            log.error(f"Installing {dependency_name} failed: {e}")
            return False

        if completed.returncode != 0:
            log.error(f"pip install {dependency_name} exited with {completed.returncode}: "
                      f"{completed.stderr.strip()[-500:]}")
            return False

        importlib.invalidate_caches()
        return True

    def _run_pip(self, dependency_name: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [sys.executable, "-m", "pip", "install", dependency_name],
            capture_output=True,
            text=True,
            timeout=self._config.install_timeout,
        )
