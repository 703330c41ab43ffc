"""
Tests for logging setup and the structured logging sink.
"""

import pytest
from pathlib import Path
from unittest.mock import patch

from loguru import logger

from hostpilot.infrastructure.config.models import LoggingConfig
from hostpilot.infrastructure.logging.setup import LoggingManager, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_loguru():
    yield
    logger.remove()
    logger.configure(extra={"component": "hostpilot", "session_id": None})


class TestSetupLogging:
    """setup_logging sinks"""

    @patch('hostpilot.infrastructure.logging.setup.logger')
    def test_console_only(self, mock_logger) -> None:
        setup_logging(LoggingConfig(console_enabled=True, file_enabled=False))

        mock_logger.remove.assert_called_once()
        assert mock_logger.add.call_count == 1

    @patch('hostpilot.infrastructure.logging.setup.logger')
    def test_console_and_file(self, mock_logger, tmp_path: Path) -> None:
        config = LoggingConfig(log_directory=str(tmp_path / "logs"), file_enabled=True)

        setup_logging(config)

        assert mock_logger.add.call_count == 2
        file_call = mock_logger.add.call_args_list[1]
        assert file_call.args[0] == tmp_path / "logs" / "hostpilot.log"
        assert file_call.kwargs["rotation"] == config.max_file_size
        assert (tmp_path / "logs").is_dir()

    def test_file_sink_writes(self, tmp_path: Path) -> None:
        config = LoggingConfig(log_directory=str(tmp_path), console_enabled=False, file_enabled=True)

        setup_logging(config)
        get_logger("Registry").info("registry ready")
        logger.complete()
        logger.remove()

        content = (tmp_path / "hostpilot.log").read_text(encoding="utf-8")
        assert "Registry" in content
        assert "registry ready" in content


class TestLoggingManager:
    """LoggingManager structured records"""

    def test_log_structured_binds_data(self, log_records) -> None:
        manager = LoggingManager({"level": "DEBUG", "console_enabled": False})

        manager.log_structured("warning", "Executor", "module slow", module="A")

        assert {"level": "WARNING", "message": "module slow", "component": "Executor"} in log_records

    def test_log_error_with_exception(self, log_records) -> None:
        manager = LoggingManager()

        manager.log_error("Executor", "module failed", ValueError("bad input"))

        assert any(r["message"] == "module failed: bad input" and r["level"] == "ERROR"
                   for r in log_records)

    def test_start_is_idempotent(self) -> None:
        manager = LoggingManager({"console_enabled": False})

        with patch('hostpilot.infrastructure.logging.setup.setup_logging') as mock_setup:
            manager.start()
            manager.start()

        mock_setup.assert_called_once_with(manager.config)
