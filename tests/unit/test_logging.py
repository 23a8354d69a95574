"""Unit tests for logging infrastructure."""
import io
import logging
from rich.console import Console
from shrinkmovies.infrastructure.logging import setup_logging


def _flush(logger):
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_console_only():
    logger = setup_logging(console=Console(file=io.StringIO()))

    assert isinstance(logger, logging.Logger)
    assert logger.getEffectiveLevel() == logging.INFO


def test_setup_logging_creates_log_file(tmp_path):
    log_file = tmp_path / "logs" / "shrink.log"

    logger = setup_logging(log_file, debug=False)
    _flush(logger)

    assert log_file.exists()
    assert "Logging initialized" in log_file.read_text()


def test_setup_logging_debug_mode(tmp_path):
    logger = setup_logging(tmp_path / "shrink.log", debug=True)

    assert logger.getEffectiveLevel() == logging.DEBUG


def test_setup_logging_format_includes_timestamp_and_level(tmp_path):
    log_file = tmp_path / "shrink.log"
    logger = setup_logging(log_file, debug=False)

    logger.info("Info message")
    logger.error("Error message")
    _flush(logger)

    content = log_file.read_text()
    assert " - INFO - Info message" in content
    assert " - ERROR - Error message" in content


def test_setup_logging_debug_messages(tmp_path):
    log_file = tmp_path / "shrink.log"

    logger_normal = setup_logging(log_file, debug=False)
    logging.getLogger("shrinkmovies.pipeline.worker").debug("Debug message in normal mode")
    _flush(logger_normal)
    assert "Debug message in normal mode" not in log_file.read_text()

    logger_debug = setup_logging(log_file, debug=True)
    logging.getLogger("shrinkmovies.pipeline.worker").debug("Debug message in debug mode")
    _flush(logger_debug)
    assert "Debug message in debug mode" in log_file.read_text()


def test_setup_logging_console_uses_rich(tmp_path):
    from rich.logging import RichHandler

    setup_logging(tmp_path / "shrink.log")

    handlers = logging.getLogger().handlers
    assert any(isinstance(h, RichHandler) for h in handlers)
    assert any(isinstance(h, logging.FileHandler) for h in handlers)
