"""Structured debug logging (timestamp, operation, key, etc.)."""

import logging
import logging.handlers
import queue
from pathlib import Path
from typing import Any, Union

LOG_FILE_PATH = Path(__file__).parent.parent.parent / "logs/kvs.log"
_LOG_LEVEL = logging.INFO

_log_queue: Union["queue.Queue[Any]", None] = None
_listener: Union[logging.handlers.QueueListener, None] = None
_listener_running = False

_FORMAT = (
    "level=%(levelname)s | time=%(asctime)s | process=%(process)d | "
    "thread=%(thread)d | module=%(module)s | funcName=%(funcName)s | "
    "lineno=%(lineno)d | message=%(message)s"
)


def setup_logging(log_file_path: Path = LOG_FILE_PATH) -> None:
    """Route the root logger through a queue to a rotating log file.

    The file handler is owned by a listener thread, so records logged
    from the event loop never wait on disk writes. Call
    start_logging_listener() afterwards to begin writing.

    Args:
        log_file_path (Path): The file to write log records to.

    """
    global _log_queue, _listener
    if _log_queue is not None:
        return

    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"),
    )

    _log_queue = queue.Queue(-1)
    _listener = logging.handlers.QueueListener(
        _log_queue,
        file_handler,
        respect_handler_level=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_LOG_LEVEL)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(logging.handlers.QueueHandler(_log_queue))


def start_logging_listener() -> None:
    """Start the listener thread that writes queued log records.

    Raises:
        RuntimeError: If setup_logging() was not called first.

    """
    global _listener_running
    if _listener is None:
        raise RuntimeError(
            "Log queue not initialized. Call setup_logging() first.",
        )
    if not _listener_running:
        _listener.start()
        _listener_running = True


def stop_logging_listener() -> None:
    """Flush pending records, stop the listener and detach the queue."""
    global _log_queue, _listener, _listener_running
    if _listener is None:
        return

    if _listener_running:
        logging.info("Log listener stopping")
        _listener.stop()
        _listener_running = False
    for handler in _listener.handlers:
        handler.close()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.handlers.QueueHandler):
            root_logger.removeHandler(handler)

    _listener = None
    _log_queue = None


def log_operation(
    time_stamp: str,
    operation: str,
    key: str,
    execution_time_ms: float,
) -> None:
    """Log the details of a store operation using the configured
    logging system.

    Args:
        time_stamp (str): The timestamp of the operation.
        operation (str): The name of the operation (get, put, ...).
        key (str): The encoded key the operation ran on.
        execution_time_ms (float): The execution time in milliseconds.

    """
    logging.info(
        "Timestamp: %s, Operation: %s, Key: '%s', Execution Time: %.2f ms",
        time_stamp,
        operation,
        key,
        execution_time_ms,
    )
