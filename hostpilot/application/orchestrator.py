"""
Application orchestrator.

Owns the plugin registry and wires the lifecycle manager, the execution
engine and the result aggregator together. This is the surface external
reporting and CLI layers talk to.
"""

import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from ..core.domain.execution import AggregatedSummary, ParallelExecutionSummary
from ..core.domain.plugins import PluginDescriptor
from ..core.interfaces.contracts import ContractRegistry, default_contracts
from ..execution.aggregator import ResultAggregator
from ..execution.engine import ParallelExecutionEngine
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.logging.setup import LoggingManager
from ..plugins.manager import PluginManager
from ..plugins.registry import PluginRegistry

log = logger.bind(component="Orchestrator")


class Orchestrator:
    """
    Entry point for discovery, plugin lifecycle and batch execution.

    The registry lives here and is handed by reference to the lifecycle
    manager, its only writer.
    """

    def __init__(self, config: Optional[ApplicationConfig] = None,
                 contracts: Optional[ContractRegistry] = None,
                 session_id: Optional[str] = None,
                 logging_manager: Optional[LoggingManager] = None) -> None:
        self._config = config or ApplicationConfig()
        self._logging_manager = logging_manager
        self._session_id = session_id or uuid.uuid4().hex[:12]
        self._contracts = contracts or default_contracts

        self._registry = PluginRegistry()
        self._plugin_manager = PluginManager(
            self._registry, self._config.plugins, self._contracts, self._session_id)
        self._engine = ParallelExecutionEngine(self._config.execution)
        self._aggregator = ResultAggregator()
        self._started = False

    @property
    def config(self) -> ApplicationConfig:
        return self._config

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def plugin_manager(self) -> PluginManager:
        return self._plugin_manager

    @property
    def contracts(self) -> ContractRegistry:
        return self._contracts

    async def start_application(self) -> None:
        """Start the plugin subsystem (discovery and optional auto-load)."""
        if self._started:
            return
        log.info(f"Starting {self._config.name} v{self._config.version} (session {self._session_id})")
        await self._plugin_manager.start()
        self._started = True

    async def stop_application(self) -> None:
        """Unload all plugins."""
        try:
            await self._plugin_manager.stop()
        except Exception as e:
            log.error(f"Error stopping plugin manager: {e}")
        self._started = False
        log.info("Application shutdown completed")

    async def check_health(self) -> Dict[str, Any]:
        return await self._plugin_manager.check_health()

    # Plugin operations

    def discover(self, paths: Optional[Iterable[str]] = None, include_disabled: bool = False,
                 force_rescan: bool = False) -> List[PluginDescriptor]:
        return self._plugin_manager.discover(paths, include_disabled, force_rescan)

    async def start(self, plugin_id: str, force: bool = False,
                    sandbox: Optional[bool] = None) -> bool:
        return await self._plugin_manager.start_plugin(plugin_id, force=force, sandbox=sandbox)

    async def stop(self, plugin_id: str, force: bool = False) -> bool:
        return await self._plugin_manager.stop_plugin(plugin_id, force=force)

    async def auto_load(self) -> int:
        return await self._plugin_manager.auto_load()

    # Batch execution

    def run_batch(self, module_names: Sequence[str], max_concurrency: Optional[int] = None,
                  dry_run: bool = False, session_id: Optional[str] = None,
                  shared_context: Optional[Mapping[str, Any]] = None,
                  timeout: Optional[float] = None) -> ParallelExecutionSummary:
        context = {
            "module_directory": self._config.execution.module_directory,
            "plugin_directories": tuple(self._config.plugins.plugin_directories),
            "log_directory": self._config.logging.log_directory,
        }
        context.update(shared_context or {})
        summary = self._engine.run_batch(
            module_names,
            max_concurrency=max_concurrency,
            dry_run=dry_run,
            session_id=session_id or self._session_id,
            shared_context=context,
            timeout=timeout,
        )
        if self._logging_manager is not None:
            self._logging_manager.log_structured(
                "INFO", "Orchestrator", "execution_completed",
                session_id=summary.session_id,
                success_count=summary.success_count,
                failed_count=summary.failed_count,
                skipped_modules=list(summary.skipped_modules),
            )
        return summary

    def merge(self, summary: ParallelExecutionSummary) -> AggregatedSummary:
        return self._aggregator.merge(summary)

    def list_modules(self) -> List[str]:
        return self._engine.discover_modules().names()
