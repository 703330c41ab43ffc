"""
Configuration loading utilities.

This module loads configuration from YAML or JSON files and applies
environment variable overrides. Configuration is read-only for hostpilot;
it never writes configuration files back.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ...core.exceptions import ConfigurationError
from .models import ApplicationConfig


class ConfigLoader:
    """Configuration loader supporting YAML/JSON files and environment overrides."""

    def __init__(self, env_prefix: str = "HOSTPILOT_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = None) -> ApplicationConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (optional)

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid
        """
        config_data: Dict[str, Any] = {}

        if config_file:
            config_data = self._load_from_file(config_file)

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        try:
            config = ApplicationConfig.from_dict(config_data)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

        config.config_file_path = config_file or ""
        return config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        path = Path(file_path)

        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        suffix = path.suffix.lower()
        if suffix in ['.yaml', '.yml']:
            data = self._load_yaml(path)
        elif suffix == '.json':
            data = self._load_json(path)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {path.suffix}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping in {file_path}")
        return data

    def _load_yaml(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {path}: {e}")

    def _load_json(self, path: Path) -> Any:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading {path}: {e}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings = {
            f"{self._env_prefix}DEBUG": ("debug", self._parse_bool),
            f"{self._env_prefix}LOG_LEVEL": ("logging.level", str),
            f"{self._env_prefix}LOG_DIR": ("logging.log_directory", str),
            f"{self._env_prefix}PLUGIN_DIRS": ("plugins.plugin_directories", self._parse_path_list),
            f"{self._env_prefix}MAX_PLUGIN_SIZE": ("plugins.max_plugin_size", int),
            f"{self._env_prefix}QUARANTINE_UNTRUSTED": ("plugins.quarantine_untrusted", self._parse_bool),
            f"{self._env_prefix}AUTO_INSTALL": ("plugins.auto_install", self._parse_bool),
            f"{self._env_prefix}MODULE_DIR": ("execution.module_directory", str),
            f"{self._env_prefix}MAX_CONCURRENCY": ("execution.max_concurrency", int),
            f"{self._env_prefix}TIMEOUT": ("execution.timeout", float),
        }

        for env_var, (config_path, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(f"Invalid value for {env_var}: {value} ({e})")

        return config

    def _parse_bool(self, value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _parse_path_list(self, value: str) -> List[str]:
        return [p for p in value.split(os.pathsep) if p.strip()]

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
