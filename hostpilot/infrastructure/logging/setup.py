"""
Logging setup and configuration utilities.

This module configures loguru sinks for the console and an optional
rotating file, and exposes the structured logging sink the plugin and
execution subsystems write to.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from ..config.models import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[component]} | {name}:{function}:{line} - {message}"
)


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    logger.remove()
    logger.configure(extra={"component": "hostpilot", "session_id": None})

    if config.console_enabled:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.level.upper(),
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "hostpilot.log",
            format=FILE_FORMAT,
            level=config.level.upper(),
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=False
        )


def get_logger(component: str, **context: Any) -> Any:
    """Get a loguru logger bound to a component name and optional context."""
    return logger.bind(component=component, **context)


class LoggingManager:
    """
    Structured logging sink.

    Wraps loguru so callers can emit (level, component, message, data)
    records without importing loguru themselves.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self._config = LoggingConfig(**(config or {}))
        self._started = False

    @property
    def config(self) -> LoggingConfig:
        return self._config

    def start(self) -> None:
        if self._started:
            return
        setup_logging(self._config)
        self._started = True
        logger.bind(component="LoggingManager").debug(
            f"Logging started at level {self._config.level}")

    def log_structured(self, level: str, component: str, message: str, **data: Any) -> None:
        """
        Log a structured message.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            component: Emitting component name
            message: Log message
            **data: Additional structured data, stored in the record's extra
        """
        bound = logger.bind(component=component, **data)
        bound.log(level.upper(), message)

    def log_error(self, component: str, message: str, error: Optional[BaseException] = None, **data: Any) -> None:
        bound = logger.bind(component=component, **data)
        if error is not None:
            bound.opt(exception=error).error(f"{message}: {error}")
        else:
            bound.error(message)
