"""
Tests for the application orchestrator.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock

from hostpilot.application.orchestrator import Orchestrator
from hostpilot.core.domain.plugins import PluginStatus
from hostpilot.infrastructure.config.models import ApplicationConfig, ExecutionConfig, PluginConfig
from hostpilot.infrastructure.logging.setup import LoggingManager


MODULE_SOURCE = '''
def invoke_{name}(context, dry_run):
    return {{"total_operations": 1, "successful_operations": 1, "module_directory": context["module_directory"]}}
'''


class TestOrchestrator:
    """Orchestrator wiring"""

    def _config(self, tmp_path: Path) -> ApplicationConfig:
        return ApplicationConfig(
            plugins=PluginConfig(plugin_directories=[str(tmp_path / "plugins")]),
            execution=ExecutionConfig(module_directory=str(tmp_path / "modules"), poll_interval=0.02),
        )

    def test_owns_its_registry(self, tmp_path: Path) -> None:
        first = Orchestrator(self._config(tmp_path))
        second = Orchestrator(self._config(tmp_path))

        assert first.registry is not second.registry
        assert first.plugin_manager.registry is first.registry

    @pytest.mark.asyncio
    async def test_plugin_lifecycle(self, tmp_path: Path, make_plugin) -> None:
        make_plugin("alpha.py", "alpha")
        orchestrator = Orchestrator(self._config(tmp_path))

        descriptors = orchestrator.discover()
        plugin_id = orchestrator.registry.find_by_name("alpha").id

        assert [d.name for d in descriptors] == ["alpha"]
        assert await orchestrator.start(plugin_id) is True
        assert await orchestrator.stop(plugin_id) is True
        assert orchestrator.registry.get(plugin_id).status == PluginStatus.UNLOADED

    @pytest.mark.asyncio
    async def test_start_application_auto_loads(self, tmp_path: Path, make_plugin) -> None:
        make_plugin("alpha.py", "alpha")
        config = self._config(tmp_path)
        config.plugins.auto_load = True
        orchestrator = Orchestrator(config)

        await orchestrator.start_application()
        health = await orchestrator.check_health()
        await orchestrator.stop_application()

        assert health['details']['loaded_plugins'] == 1
        assert orchestrator.registry.loaded() == []

    def test_run_batch_and_merge(self, tmp_path: Path, make_module) -> None:
        make_module("alpha", MODULE_SOURCE.format(name="alpha"))
        make_module("beta", MODULE_SOURCE.format(name="beta"))
        logging_manager = Mock(spec=LoggingManager)
        orchestrator = Orchestrator(self._config(tmp_path), session_id="session-1",
                                    logging_manager=logging_manager)

        summary = orchestrator.run_batch(["alpha", "beta", "gamma"], dry_run=True)
        merged = orchestrator.merge(summary)

        assert summary.session_id == "session-1"
        assert summary.success_count == 2
        assert summary.skipped_modules == ["gamma"]
        assert merged.operation_totals == {"total_operations": 2, "successful_operations": 2}
        assert summary.results[0].result["module_directory"] == str(tmp_path / "modules")
        logging_manager.log_structured.assert_called_once()
        assert orchestrator.list_modules() == ["alpha", "beta"]
