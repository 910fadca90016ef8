import logging
import logging.handlers

import pytest

from src.kvs import logger


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "kvs.log"
    yield path
    logger.stop_logging_listener()


def test_start_without_setup_raises():
    with pytest.raises(RuntimeError):
        logger.start_logging_listener()


def test_records_reach_the_log_file(log_file):
    """Test that queued records are written by the listener."""
    logger.setup_logging(log_file)
    logger.start_logging_listener()

    logger.log_operation("2026-01-01 00:00:00", "put", "['a', 1]", 1.234)
    logger.stop_logging_listener()

    content = log_file.read_text(encoding="utf-8")
    assert "level=INFO" in content
    assert "Operation: put" in content
    assert "Key: '['a', 1]'" in content
    assert "Execution Time: 1.23 ms" in content


def test_setup_installs_a_single_queue_handler(log_file):
    logger.setup_logging(log_file)
    logger.setup_logging(log_file)

    queue_handlers = [
        handler
        for handler in logging.getLogger().handlers
        if isinstance(handler, logging.handlers.QueueHandler)
    ]
    assert len(queue_handlers) == 1


def test_stop_detaches_queue_handler(log_file):
    logger.setup_logging(log_file)
    logger.start_logging_listener()
    logger.stop_logging_listener()

    assert not any(
        isinstance(handler, logging.handlers.QueueHandler)
        for handler in logging.getLogger().handlers
    )


def test_stop_without_setup_is_noop():
    logger.stop_logging_listener()


def test_stop_logs_to_file_not_stderr(log_file, capsys):
    logger.setup_logging(log_file)
    logger.start_logging_listener()
    logger.stop_logging_listener()

    assert capsys.readouterr().err == ""
    assert "Log listener stopping" in log_file.read_text(encoding="utf-8")
