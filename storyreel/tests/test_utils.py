"""
Unit tests for logging utilities.
"""

import logging

import pytest

from storyreel.utils.logger import (
    NOISY_LOGGERS,
    ColoredFormatter,
    LogLevelContext,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """setup_logging replaces the root handlers; put them back afterwards"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestLogger:
    """Test the logging utilities"""

    def test_get_logger(self):
        """Test that get_logger returns a logger instance"""
        logger = get_logger("test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test"

    def test_setup_logging(self, restore_root_logger):
        """Test that setup_logging configures the root logger"""
        setup_logging(level="WARNING", enable_colors=False)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_setup_logging_silences_noisy_libraries(self, restore_root_logger):
        setup_logging(level="DEBUG", enable_colors=False)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_setup_logging_with_file(self, tmp_path, restore_root_logger):
        """Test that a log file handler is added and written to"""
        log_file = tmp_path / "logs" / "storyreel.log"
        setup_logging(level="INFO", log_file=str(log_file), enable_colors=False)

        get_logger("test_file").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "written to file" in log_file.read_text()

    def test_log_level_context(self, restore_root_logger):
        """Test that LogLevelContext restores the previous level"""
        root = logging.getLogger()
        root.setLevel(logging.INFO)

        with LogLevelContext("ERROR"):
            assert root.level == logging.ERROR

        assert root.level == logging.INFO

    def test_colored_formatter_does_not_mutate_record(self):
        """Colors must not leak into other handlers sharing the record"""
        record = logging.LogRecord("colored", logging.WARNING, __file__, 1, "msg", None, None)
        formatted = ColoredFormatter("%(levelname)s %(name)s %(message)s").format(record)

        assert "\033[" in formatted
        assert record.levelname == "WARNING"
        assert record.name == "colored"
