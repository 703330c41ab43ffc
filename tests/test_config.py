"""
Tests for configuration models and the configuration loader.
"""

import json
import os
import pytest
from pathlib import Path
from unittest.mock import patch

from hostpilot.core.exceptions import ConfigurationError
from hostpilot.infrastructure.config.loader import ConfigLoader
from hostpilot.infrastructure.config.models import (
    ApplicationConfig, ExecutionConfig, LoggingConfig, PluginConfig
)


class TestApplicationConfig:
    """ApplicationConfig defaults and validation"""

    def test_defaults(self) -> None:
        config = ApplicationConfig()

        assert config.execution.max_concurrency == 3
        assert config.execution.timeout == 1800.0
        assert config.execution.poll_interval == 0.5
        assert config.plugins.max_plugin_size == 1024 * 1024
        assert "FullControl" in config.plugins.dangerous_permissions
        assert config.plugins.auto_install is False

    @pytest.mark.parametrize("concurrency", [0, 11])
    def test_concurrency_bounds(self, concurrency: int) -> None:
        with pytest.raises(ValueError):
            ApplicationConfig(execution=ExecutionConfig(max_concurrency=concurrency))

    def test_invalid_values(self) -> None:
        with pytest.raises(ValueError):
            ApplicationConfig(execution=ExecutionConfig(timeout=0))
        with pytest.raises(ValueError):
            ApplicationConfig(plugins=PluginConfig(max_plugin_size=0))
        with pytest.raises(ValueError):
            ApplicationConfig(plugins=PluginConfig(health_check_interval=-1))
        with pytest.raises(ValueError):
            ApplicationConfig(logging=LoggingConfig(level="LOUD"))

    def test_dict_round_trip(self) -> None:
        config = ApplicationConfig(plugins=PluginConfig(plugin_directories=["a", "b"]))

        restored = ApplicationConfig.from_dict(config.to_dict())

        assert restored == config


class TestConfigLoader:
    """ConfigLoader files and environment overrides"""

    def setup_method(self) -> None:
        self.loader = ConfigLoader()

    def test_load_without_file_uses_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = self.loader.load_config()

        assert config == ApplicationConfig()

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "name: Nightly\n"
            "plugins:\n"
            "  plugin_directories: [plugins, extra]\n"
            "  quarantine_untrusted: true\n"
            "execution:\n"
            "  max_concurrency: 5\n",
            encoding="utf-8",
        )

        with patch.dict(os.environ, {}, clear=True):
            config = self.loader.load_config(str(path))

        assert config.name == "Nightly"
        assert config.plugins.plugin_directories == ["plugins", "extra"]
        assert config.plugins.quarantine_untrusted is True
        assert config.execution.max_concurrency == 5
        assert config.config_file_path == str(path)

    def test_load_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"logging": {"level": "DEBUG"}}), encoding="utf-8")

        with patch.dict(os.environ, {}, clear=True):
            config = self.loader.load_config(str(path))

        assert config.logging.level == "DEBUG"

    def test_environment_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("execution:\n  max_concurrency: 5\n", encoding="utf-8")
        env = {
            "HOSTPILOT_MAX_CONCURRENCY": "7",
            "HOSTPILOT_AUTO_INSTALL": "yes",
            "HOSTPILOT_PLUGIN_DIRS": os.pathsep.join(["one", "two"]),
            "HOSTPILOT_TIMEOUT": "60",
        }

        with patch.dict(os.environ, env, clear=True):
            config = self.loader.load_config(str(path))

        assert config.execution.max_concurrency == 7
        assert config.execution.timeout == 60.0
        assert config.plugins.auto_install is True
        assert config.plugins.plugin_directories == ["one", "two"]

    def test_bad_environment_value(self) -> None:
        with patch.dict(os.environ, {"HOSTPILOT_MAX_CONCURRENCY": "many"}, clear=True):
            with pytest.raises(ConfigurationError):
                self.loader.load_config()

    @pytest.mark.parametrize("filename,content", [
        ("config.yaml", "plugins: [unclosed\n"),
        ("config.json", "{not json"),
        ("config.toml", "x = 1\n"),
        ("config.yaml", "- just\n- a list\n"),
        ("config.yaml", "execution:\n  max_concurrency: 50\n"),
        ("config.yaml", "plugins:\n  unknown_option: 1\n"),
    ])
    def test_invalid_files(self, tmp_path: Path, filename: str, content: str) -> None:
        path = tmp_path / filename
        path.write_text(content, encoding="utf-8")

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                self.loader.load_config(str(path))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            self.loader.load_config(str(tmp_path / "absent.yaml"))
