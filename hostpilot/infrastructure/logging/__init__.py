"""
Logging infrastructure built on loguru.
"""

from .setup import setup_logging, get_logger, LoggingManager

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingManager",
]
