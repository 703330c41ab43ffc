"""
Tests for the command-line interface.
"""

import json
import pytest
from pathlib import Path
from unittest.mock import patch
from typer.testing import CliRunner

from hostpilot.main import cli


MODULE_SOURCE = '''
def invoke_{name}(dry_run):
    if "{name}" == "broken":
        raise RuntimeError("broken module")
    return {{"total_operations": 1, "successful_operations": 1}}
'''


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('hostpilot.main.LoggingManager') as mock_manager:
        yield mock_manager


class TestMainCLI:
    """CLI commands"""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    def _config(self, tmp_path: Path) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(
            "plugins:\n"
            f"  plugin_directories: ['{(tmp_path / 'plugins').as_posix()}']\n"
            "execution:\n"
            f"  module_directory: '{(tmp_path / 'modules').as_posix()}'\n"
            "  poll_interval: 0.02\n",
            encoding="utf-8",
        )
        return str(path)

    def test_help(self) -> None:
        result = self.runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Host-local automation runner" in result.output

    def test_contracts(self) -> None:
        result = self.runner.invoke(cli, ["contracts"])

        assert result.exit_code == 0
        assert "IMaintenancePlugin: requires execute, get_info, initialize" in result.output
        assert "ISecurityPlugin" in result.output

    def test_discover_json(self, tmp_path: Path, make_plugin) -> None:
        make_plugin("alpha.py", "alpha")
        make_plugin("odd.py", "odd", interface="IOddPlugin")

        result = self.runner.invoke(cli, ["discover", "--config", self._config(tmp_path), "--json"])

        assert result.exit_code == 0
        entries = {e["descriptor"]["name"]: e for e in json.loads(result.output)}
        assert entries["alpha"]["is_valid"] is True
        assert entries["odd"]["is_valid"] is False

    def test_discover_text(self, tmp_path: Path, make_plugin) -> None:
        make_plugin("alpha.py", "alpha")

        result = self.runner.invoke(cli, ["discover", "--config", self._config(tmp_path)])

        assert result.exit_code == 0
        assert "alpha 1.0.0 [IUtilityPlugin] valid, risk Low" in result.output

    def test_autoload(self, tmp_path: Path, make_plugin) -> None:
        make_plugin("alpha.py", "alpha")
        make_plugin("beta.py", "beta")

        result = self.runner.invoke(cli, ["autoload", "--config", self._config(tmp_path)])

        assert result.exit_code == 0
        assert "Loaded 2 plugins" in result.output

    def test_run_json(self, tmp_path: Path, make_module) -> None:
        make_module("alpha", MODULE_SOURCE.format(name="alpha"))
        make_module("beta", MODULE_SOURCE.format(name="beta"))

        result = self.runner.invoke(
            cli, ["run", "alpha", "beta", "--config", self._config(tmp_path), "--dry-run", "--json"])

        assert result.exit_code == 0
        summary = json.loads(result.output)
        assert summary["successful_modules"] == 2
        assert summary["operation_totals"]["total_operations"] == 2

    def test_run_with_failure_exits_non_zero(self, tmp_path: Path, make_module) -> None:
        make_module("broken", MODULE_SOURCE.format(name="broken"))

        result = self.runner.invoke(cli, ["run", "broken", "missing", "--config", self._config(tmp_path)])

        assert result.exit_code == 1
        assert "broken module" in result.output
        assert "Skipped unknown modules: missing" in result.output

    def test_validate_config(self, tmp_path: Path) -> None:
        result = self.runner.invoke(cli, ["validate-config", self._config(tmp_path)])

        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_validate_config_failure(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("execution:\n  max_concurrency: 99\n", encoding="utf-8")

        result = self.runner.invoke(cli, ["validate-config", str(path)])

        assert result.exit_code == 1

    def test_bad_config_for_command(self, tmp_path: Path) -> None:
        result = self.runner.invoke(cli, ["discover", "--config", str(tmp_path / "absent.yaml")])

        assert result.exit_code == 1
