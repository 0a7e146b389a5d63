"""Tests for hook logging setup."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from runewatch.config import LoggingConfig
from runewatch.logs import LOGGER_NAME, configure_logging


@pytest.fixture(autouse=True)
def clean_logger():
    """Remove handlers added by a test."""
    logger = logging.getLogger(LOGGER_NAME)
    before = list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_no_file_configured(self):
        """Test no file handler is attached by default."""
        logger = configure_logging(LoggingConfig())
        assert not any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        assert logger.level == logging.WARNING

    def test_file_handler(self, tmp_path):
        """Test records go to the configured file."""
        log_file = tmp_path / "logs" / "hooks.log"
        logger = configure_logging(LoggingConfig(file=str(log_file), level="INFO"))
        logging.getLogger("runewatch.metrics.aggregator").info("flushed session")

        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text()
        assert "INFO: flushed session" in content

    def test_not_added_twice(self, tmp_path):
        """Test repeated setup keeps a single file handler."""
        config = LoggingConfig(file=str(tmp_path / "hooks.log"))
        configure_logging(config)
        logger = configure_logging(config)
        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1

    def test_invalid_level_falls_back(self):
        """Test an unknown level name uses WARNING."""
        logger = configure_logging(LoggingConfig(level="LOUD"))
        assert logger.level == logging.WARNING

    def test_unwritable_location(self, tmp_path):
        """Test an unusable log path does not raise."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        logger = configure_logging(LoggingConfig(file=str(blocker / "hooks.log")))
        assert not any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
