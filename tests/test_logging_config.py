"""
Tests for logging configuration.

Tests cover:
- Log directory and file creation
- Log level selection via PLANBOARD_LOG_LEVEL
- Optional stderr mirroring
- Rotation settings
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from unittest.mock import patch

import pytest

from planboard.logging_config import BACKUP_COUNT, MAX_BYTES, get_logger, setup_logging


@pytest.fixture
def mock_log_dir(tmp_path, monkeypatch):
    """Point LOG_DIR and LOG_FILE at a temporary directory."""
    log_dir = tmp_path / ".planboard" / "logs"
    log_file = log_dir / "planboard.log"

    monkeypatch.setattr("planboard.logging_config.LOG_DIR", log_dir)
    monkeypatch.setattr("planboard.logging_config.LOG_FILE", log_file)

    return log_dir, log_file


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset root logger handlers before and after each test."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)

    yield

    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestLogFiles:
    """Tests for log directory and file handling."""

    def test_log_directory_created(self, mock_log_dir):
        log_dir, _ = mock_log_dir
        assert not log_dir.exists()

        setup_logging()

        assert log_dir.is_dir()

    def test_messages_written_to_file(self, mock_log_dir):
        _, log_file = mock_log_dir

        setup_logging()
        get_logger("planboard.services.reorder_service").info("Moved stage from 2 to 0")
        _flush()

        content = log_file.read_text()
        assert "Moved stage from 2 to 0" in content
        assert "planboard.services.reorder_service" in content
        assert "INFO" in content

    def test_rotating_handler_configured(self, mock_log_dir):
        setup_logging()

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]

        assert len(handlers) == 1
        assert handlers[0].maxBytes == MAX_BYTES
        assert handlers[0].backupCount == BACKUP_COUNT

    def test_repeated_setup_does_not_duplicate_handlers(self, mock_log_dir):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1


class TestLogLevel:
    """Tests for log level selection."""

    def test_default_level_is_info(self, mock_log_dir):
        setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_env_var_sets_level(self, mock_log_dir):
        with patch.dict(os.environ, {"PLANBOARD_LOG_LEVEL": "debug"}):
            setup_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_level_falls_back_to_info(self, mock_log_dir):
        with patch.dict(os.environ, {"PLANBOARD_LOG_LEVEL": "LOUD"}):
            setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_parameter_overrides_env_var(self, mock_log_dir):
        with patch.dict(os.environ, {"PLANBOARD_LOG_LEVEL": "ERROR"}):
            setup_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_info_level_filters_debug(self, mock_log_dir):
        _, log_file = mock_log_dir

        setup_logging(log_level="INFO")
        logger = get_logger("test")
        logger.debug("hidden debug line")
        logger.info("visible info line")
        _flush()

        content = log_file.read_text()
        assert "hidden debug line" not in content
        assert "visible info line" in content


class TestConsoleOutput:
    """Tests for the optional stderr handler."""

    def test_no_console_by_default(self, mock_log_dir):
        setup_logging()

        stream_handlers = [
            h for h in logging.getLogger().handlers
            if type(h) is logging.StreamHandler
        ]
        assert stream_handlers == []

    def test_console_mirrors_to_stderr(self, mock_log_dir, capsys):
        setup_logging(console=True)

        get_logger("test").warning("shown on stderr")
        _flush()

        assert "shown on stderr" in capsys.readouterr().err


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_named_logger(self):
        logger = get_logger("planboard.storage")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "planboard.storage"
        assert get_logger("planboard.storage") is logger
