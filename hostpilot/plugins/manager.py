"""
Plugin lifecycle manager.

This module provides plugin discovery, loading with dependency resolution,
unloading and health monitoring. Entries move Registered -> Loaded ->
Unloaded; a loaded handle exists for an entry exactly while it is Loaded.
"""

import asyncio
import datetime
import inspect
import time
import traceback
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from ..core.domain.plugins import (
    HealthStatus, LoadedPluginHandle, PluginDescriptor, PluginStatus, RegistryEntry, RiskLevel
)
from ..core.exceptions import (
    DependencyCycleError, HostPilotException, PluginExecutionError, PluginInitializationError,
    PluginLoadError, PluginNotFoundError, PluginShutdownError, PluginValidationError,
    SecurityQuarantineError
)
from ..core.interfaces.contracts import ContractRegistry, default_contracts
from ..core.interfaces.lifecycle import IComponent, health_report
from ..infrastructure.config.models import PluginConfig
from .base import PluginContext
from .dependencies import DependencyResolver
from .metadata import PluginMetadataParser
from .registry import PluginRegistry
from .sandbox import instantiate_plugin, load_plugin_module
from .security import SecurityClassifier
from .validator import PluginValidator

log = logger.bind(component="PluginManager")

CATEGORY_PRIORITY = {"system": 0, "security": 1}
DISABLED_SUFFIX = ".disabled.py"
DISABLED_DIRECTORY = "disabled"


async def _call_hook(hook: Any, *args: Any) -> Any:
    """Call a plugin hook that may be a plain function or a coroutine function."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class PluginManager(IComponent):
    """
    Plugin manager implementation with dependency resolution and sandboxing.

    Owns the loaded-plugin handles and is the only writer of registry entry
    state.
    """

    def __init__(self, registry: PluginRegistry, config: Optional[PluginConfig] = None,
                 contracts: Optional[ContractRegistry] = None,
                 session_id: Optional[str] = None) -> None:
        self._registry = registry
        self._config = config or PluginConfig()
        self._contracts = contracts or default_contracts
        self._session_id = session_id

        self._parser = PluginMetadataParser(self._contracts)
        self._validator = PluginValidator(self._config, self._contracts)
        self._classifier = SecurityClassifier(self._config)
        self._resolver = DependencyResolver(
            registry,
            start_plugin=self._start_dependency,
            is_active=self.is_name_loaded,
            config=self._config,
        )

        self._handles: Dict[str, LoadedPluginHandle] = {}
        self._monitors: Dict[str, asyncio.Task] = {}
        self._loading: Set[str] = set()

    @property
    def name(self) -> str:
        return "PluginManager"

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def resolver(self) -> DependencyResolver:
        return self._resolver

    async def _on_start(self) -> None:
        """Discover plugins and auto-load them when configured."""
        log.info("Starting plugin manager")
        self.discover()
        if self._config.auto_load:
            await self.auto_load()
        log.info(f"Plugin manager started with {len(self._registry)} registered plugins")

    def holds_resources(self) -> bool:
        return bool(self._handles)

    async def _on_stop(self) -> None:
        """Unload every loaded plugin and stop health monitoring."""
        log.info("Stopping plugin manager...")
        for plugin_id in list(self._handles.keys()):
            await self.stop_plugin(plugin_id, force=True)
        log.info("Plugin manager stopped")

    async def check_health(self) -> Dict[str, Any]:
        plugins = {}
        overall_healthy = True
        for plugin_id, handle in self._handles.items():
            plugins[plugin_id] = handle.health_status.value
            if handle.health_status == HealthStatus.UNHEALTHY:
                overall_healthy = False

        return health_report(
            overall_healthy,
            self.state,
            registered_plugins=len(self._registry),
            loaded_plugins=len(self._handles),
            plugin_directories=list(self._config.plugin_directories),
            plugins=plugins,
        )

    # Discovery

    def discover(self, paths: Optional[Iterable[str]] = None, include_disabled: bool = False,
                 force_rescan: bool = False) -> List[PluginDescriptor]:
        """
        Discover, validate, classify and register plugins.

        Args:
            paths: Directories to scan (defaults to the configured ones)
            include_disabled: Also pick up files marked disabled
            force_rescan: Re-register files that are already registered

        Returns:
            Descriptors of every plugin found, including already registered ones
        """
        directories = list(paths) if paths is not None else list(self._config.plugin_directories)
        descriptors: List[PluginDescriptor] = []
        parsed: List[Tuple[PluginDescriptor, str]] = []

        for file_path in self._candidate_files(directories, include_disabled):
            if not force_rescan:
                existing = self._unchanged_entry(file_path)
                if existing is not None:
                    descriptors.append(existing.descriptor)
                    continue

            descriptor, source = self._parser.parse_file_with_source(file_path)
            if descriptor is None or source is None:
                continue
            parsed.append((descriptor, source))

        known_names = self._registry.names() | {d.name for d, _ in parsed}
        for descriptor, source in parsed:
            others = known_names - {descriptor.name}
            validation = self._validator.validate(descriptor, source, others)
            security = self._classifier.classify(source)

            for issue in validation.issues:
                log.warning(f"{descriptor.name}: {issue}")
            if security.should_quarantine:
                log.warning(f"{descriptor.name}: quarantined (risk {security.risk_level.value})")

            if self._registry.register(descriptor, validation, security) is not None:
                descriptors.append(descriptor)

        log.info(f"Discovered {len(descriptors)} plugins in {len(directories)} directories")
        return descriptors

    def _candidate_files(self, directories: List[str], include_disabled: bool) -> List[str]:
        files: List[str] = []
        for directory in directories:
            plugin_dir = Path(directory)
            if not plugin_dir.is_dir():
                log.warning(f"Plugin directory does not exist: {directory}")
                continue

            for file_path in sorted(plugin_dir.rglob("*.py")):
                if file_path.name.startswith("__"):
                    continue
                disabled = file_path.name.endswith(DISABLED_SUFFIX) or \
                    DISABLED_DIRECTORY in file_path.relative_to(plugin_dir).parts[:-1]
                if disabled and not include_disabled:
                    log.debug(f"Skipping disabled plugin file {file_path}")
                    continue
                files.append(str(file_path))
        return files

    def _unchanged_entry(self, file_path: str) -> Optional[RegistryEntry]:
        entries = self._registry.find_by_path(file_path)
        if not entries:
            return None
        latest = max(entries, key=lambda e: e.descriptor.discovery_time)
        if latest.status == PluginStatus.UNLOADED:
            return None
        try:
            mtime = datetime.datetime.fromtimestamp(Path(file_path).stat().st_mtime)
        except OSError:
            return None
        if latest.descriptor.last_modified == mtime:
            return latest
        return None

    # Lifecycle

    async def start_plugin(self, plugin_id: str, force: bool = False,
                           sandbox: Optional[bool] = None) -> bool:
        """
        Load and initialize a plugin.

        Args:
            plugin_id: Registry id
            force: Load despite validation issues or quarantine
            sandbox: Load with the restricted importer (defaults to config)

        Returns:
            True if the plugin is loaded afterwards
        """
        entry = self._registry.get(plugin_id)
        if entry is None:
            log.error(PluginNotFoundError(plugin_id).message)
            return False

        if entry.status == PluginStatus.LOADED and plugin_id in self._handles:
            log.info(f"Plugin {entry.name} is already loaded")
            return True

        if entry.status == PluginStatus.UNLOADED:
            return self._record_failure(entry, f"Plugin {entry.name} was unloaded; rediscover to reload")

        use_sandbox = self._config.sandbox_enabled if sandbox is None else sandbox
        log.info(f"Loading plugin {entry.name} ({plugin_id})")
        self._loading.add(plugin_id)
        try:
            handle = await self._load(entry, force, use_sandbox)
        except HostPilotException as e:
            return self._record_failure(entry, e.message)
        except Exception as e:
            log.debug(f"Plugin load error details: {traceback.format_exc()}")
            return self._record_failure(entry, f"Unexpected error loading {entry.name}: {e}")
        finally:
            self._loading.discard(plugin_id)

        self._handles[plugin_id] = handle
        entry.status = PluginStatus.LOADED
        entry.load_time = handle.load_time
        entry.health_status = HealthStatus.HEALTHY
        entry.last_error = None

        if self._config.health_check_interval > 0:
            self._start_monitor(plugin_id)

        log.info(f"Plugin {entry.name} loaded successfully")
        return True

    async def _start_dependency(self, plugin_id: str) -> bool:
        if plugin_id in self._loading:
            entry = self._registry.get(plugin_id)
            name = entry.name if entry else plugin_id
            log.error(DependencyCycleError([name, name]).message)
            return False
        return await self.start_plugin(plugin_id)

    async def _load(self, entry: RegistryEntry, force: bool, sandbox: bool) -> LoadedPluginHandle:
        descriptor = entry.descriptor

        if not entry.validation.is_valid:
            if not force:
                raise PluginValidationError(
                    f"Plugin {descriptor.name} failed validation: {'; '.join(entry.validation.issues)}",
                    entry.validation.issues)
            log.warning(f"Force loading invalid plugin {descriptor.name}")

        if entry.security.should_quarantine:
            if not force:
                raise SecurityQuarantineError(
                    f"Plugin {descriptor.name} is quarantined (risk {entry.security.risk_level.value})",
                    entry.security.risk_level.value)
            log.warning(f"Force loading quarantined plugin {descriptor.name}")

        for dependency in descriptor.dependencies:
            await self._resolver.ensure(dependency, entry.id)

        contract = self._contracts.get_contract(descriptor.interface_name)
        if contract is None:
            raise PluginLoadError(f"Unknown interface '{descriptor.interface_name}' for {descriptor.name}")

        module_name = "hostpilot_plugin_" + "".join(c if c.isalnum() else "_" for c in entry.id)
        module = load_plugin_module(
            descriptor.file_path, module_name, sandbox=sandbox,
            blocked_modules=self._config.sandbox_blocked_modules)
        plugin = instantiate_plugin(module)

        missing = contract.missing_methods(plugin)
        if missing:
            raise PluginLoadError(
                f"Plugin {descriptor.name} does not implement {contract.name}: missing {', '.join(missing)}")

        context = PluginContext(
            plugin_id=entry.id,
            plugin_name=descriptor.name,
            configuration=entry.configuration,
            session_id=self._session_id,
            dependencies=list(descriptor.dependencies),
        )
        try:
            initialized = await _call_hook(plugin.initialize, context)
        except Exception as e:
            raise PluginInitializationError(f"Plugin {descriptor.name} initialization raised: {e}") from e
        if initialized is False:
            raise PluginInitializationError(f"Plugin {descriptor.name} initialization returned False")

        await self._check_reported_info(plugin, descriptor)

        return LoadedPluginHandle(entry=entry, plugin=plugin, module=module)

    async def _check_reported_info(self, plugin: Any, descriptor: PluginDescriptor) -> None:
        try:
            info = await _call_hook(plugin.get_info)
        except Exception as e:
            log.warning(f"Plugin {descriptor.name} get_info failed: {e}")
            return

        reported = info.get('name') if isinstance(info, dict) else getattr(info, 'name', None)
        if reported and reported != descriptor.name:
            log.warning(
                f"Plugin reports name '{reported}' but its header declares '{descriptor.name}'")

    def _record_failure(self, entry: RegistryEntry, message: str) -> bool:
        entry.last_error = message
        log.error(f"Failed to load plugin {entry.name}: {message}")
        return False

    async def stop_plugin(self, plugin_id: str, force: bool = False) -> bool:
        """
        Unload a plugin.

        Returns:
            True if the plugin is not loaded afterwards
        """
        entry = self._registry.get(plugin_id)
        if entry is None:
            log.error(PluginNotFoundError(plugin_id).message)
            return False

        handle = self._handles.get(plugin_id)
        if entry.status != PluginStatus.LOADED or handle is None:
            log.debug(f"Plugin {entry.name} is not loaded")
            return True

        log.info(f"Unloading plugin {entry.name}")
        shutdown = getattr(handle.plugin, 'shutdown', None)
        if callable(shutdown):
            try:
                if await _call_hook(shutdown) is False:
                    raise PluginShutdownError(f"Plugin {entry.name} shutdown returned False")
            except Exception as e:
                message = e.message if isinstance(e, PluginShutdownError) else \
                    f"Plugin {entry.name} shutdown failed: {e}"
                if not force:
                    entry.last_error = message
                    log.error(f"{message}; unload aborted")
                    return False
                log.warning(f"{message}; forcing unload")

        self._stop_monitor(plugin_id)
        del self._handles[plugin_id]
        handle.plugin = None
        handle.module = None
        entry.status = PluginStatus.UNLOADED
        entry.health_status = HealthStatus.UNKNOWN

        log.info(f"Plugin {entry.name} unloaded successfully")
        return True

    async def auto_load(self) -> int:
        """
        Load every eligible registered plugin.

        Eligible plugins are valid, not High risk and still Registered. They
        load system plugins first, then security plugins, then the rest, by name.

        Returns:
            Number of plugins loaded
        """
        candidates = [
            e for e in self._registry.entries()
            if e.validation.is_valid
            and e.security.risk_level != RiskLevel.HIGH
            and e.status == PluginStatus.REGISTERED
        ]
        candidates.sort(key=lambda e: (
            CATEGORY_PRIORITY.get((e.descriptor.category or "").lower(), len(CATEGORY_PRIORITY)),
            e.name,
        ))

        loaded = 0
        failed = 0
        for entry in candidates:
            if entry.status == PluginStatus.LOADED:
                # Pulled in earlier as another plugin's dependency
                continue
            if await self.start_plugin(entry.id):
                loaded += 1
            else:
                failed += 1

        log.info(f"Auto-load finished: {loaded} loaded, {failed} failed")
        return loaded

    # Runtime operations

    async def execute_plugin(self, plugin_id: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke a loaded plugin's ``execute`` hook.

        Raises:
            PluginNotFoundError: If the plugin is not loaded
            PluginExecutionError: If the plugin has no execute hook or it fails
        """
        handle = self._handles.get(plugin_id)
        if handle is None:
            raise PluginNotFoundError(plugin_id)

        entry = handle.entry
        execute = getattr(handle.plugin, 'execute', None)
        if not callable(execute):
            raise PluginExecutionError(f"Plugin {entry.name} has no execute hook")

        started = time.perf_counter()
        try:
            return await _call_hook(lambda: execute(*args, **kwargs))
        except Exception as e:
            entry.last_error = f"Execution failed: {e}"
            raise PluginExecutionError(f"Plugin {entry.name} execution failed: {e}") from e
        finally:
            handle.execution_count += 1
            handle.total_execution_time += time.perf_counter() - started
            entry.execution_count += 1

    async def check_plugin_health(self, plugin_id: str) -> bool:
        """Run a plugin's health hook and record the outcome."""
        handle = self._handles.get(plugin_id)
        if handle is None:
            return False

        healthy = True
        health_check = getattr(handle.plugin, 'health_check', None)
        if callable(health_check):
            try:
                report = await _call_hook(health_check)
                if isinstance(report, dict):
                    healthy = bool(report.get('healthy', True))
                elif report is False:
                    healthy = False
            except Exception as e:
                log.warning(f"Health check of {handle.entry.name} failed: {e}")
                healthy = False

        status = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
        handle.health_status = status
        handle.last_health_check = datetime.datetime.now()
        handle.entry.health_status = status
        return healthy

    def _start_monitor(self, plugin_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._monitors[plugin_id] = loop.create_task(self._monitor(plugin_id))

    def _stop_monitor(self, plugin_id: str) -> None:
        task = self._monitors.pop(plugin_id, None)
        if task is not None and not task.done():
            task.cancel()

    async def _monitor(self, plugin_id: str) -> None:
        interval = self._config.health_check_interval
        while plugin_id in self._handles:
            await asyncio.sleep(interval)
            if plugin_id not in self._handles:
                break
            await self.check_plugin_health(plugin_id)

    # Queries

    def get_handle(self, plugin_id: str) -> Optional[LoadedPluginHandle]:
        return self._handles.get(plugin_id)

    def loaded_handles(self) -> Dict[str, LoadedPluginHandle]:
        return dict(self._handles)

    def is_name_loaded(self, name: str) -> bool:
        return any(h.entry.name == name for h in self._handles.values())
