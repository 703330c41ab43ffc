"""
Configuration models and data structures.

This module defines the configuration consumed by the plugin and execution
subsystems: plugin directories, size limits, denylists and policy flags.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List


DEFAULT_DANGEROUS_CALLS: List[str] = [
    r"\beval\s*\(",
    r"\bexec\s*\(",
    r"\bos\.system\s*\(",
    r"\bos\.popen\s*\(",
    r"\bsubprocess\.",
    r"\b__import__\s*\(",
    r"\bctypes\b",
    r"\bmarshal\.loads\s*\(",
    r"\bpickle\.loads\s*\(",
]

VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


@dataclass
class PluginConfig:
    """Plugin system configuration."""
    plugin_directories: List[str] = field(default_factory=lambda: ["plugins"])
    auto_load: bool = False
    sandbox_enabled: bool = False
    max_plugin_size: int = 1024 * 1024
    dangerous_permissions: List[str] = field(
        default_factory=lambda: ["FullControl", "RegistryWrite", "SystemModify"])
    dangerous_calls: List[str] = field(default_factory=lambda: list(DEFAULT_DANGEROUS_CALLS))
    quarantine_untrusted: bool = False
    auto_install: bool = False
    install_timeout: float = 300.0
    static_analysis_enabled: bool = True
    health_check_interval: float = 0.0
    sandbox_blocked_modules: List[str] = field(
        default_factory=lambda: ["subprocess", "socket", "ctypes", "pty", "multiprocessing"])


@dataclass
class ExecutionConfig:
    """Parallel execution configuration."""
    module_directory: str = "modules"
    max_concurrency: int = 3
    timeout: float = 1800.0
    poll_interval: float = 0.5


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "HostPilot"
    version: str = "0.1.0"
    debug: bool = False

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    plugins: PluginConfig = field(default_factory=PluginConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    config_file_path: str = ""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_execution()
        self._validate_plugins()
        self._validate_logging()

    def _validate_execution(self) -> None:
        if not (1 <= self.execution.max_concurrency <= 10):
            raise ValueError(
                f"max_concurrency must be between 1 and 10, got {self.execution.max_concurrency}")

        timeouts = [
            ("Execution timeout", self.execution.timeout),
            ("Poll interval", self.execution.poll_interval),
        ]
        for name, timeout in timeouts:
            if timeout <= 0:
                raise ValueError(f"{name} must be positive, got {timeout}")

    def _validate_plugins(self) -> None:
        if self.plugins.max_plugin_size <= 0:
            raise ValueError(
                f"max_plugin_size must be positive, got {self.plugins.max_plugin_size}")
        if self.plugins.health_check_interval < 0:
            raise ValueError(
                f"health_check_interval cannot be negative, got {self.plugins.health_check_interval}")
        if self.plugins.install_timeout <= 0:
            raise ValueError(
                f"install_timeout must be positive, got {self.plugins.install_timeout}")

    def _validate_logging(self) -> None:
        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'HostPilot'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            logging=LoggingConfig(**data.get('logging', {})),
            plugins=PluginConfig(**data.get('plugins', {})),
            execution=ExecutionConfig(**data.get('execution', {})),
            config_file_path=data.get('config_file_path') or "",
        )
