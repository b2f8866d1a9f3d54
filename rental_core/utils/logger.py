"""
Logging for the rental core.

Console lines carry their extras inline (`message | key=value | ...`) so they
survive the Functions host replacing formatters. When the logs-queue feature
flag is on, each record is also shipped as JSON to an Azure Storage queue.
"""

import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.queue import QueueClient

from .json_utils import dumps

if TYPE_CHECKING:
    from ..config import AppConfig

PACKAGE_LOGGER_NAME = "rental_core"

_configured_logger: Optional["ContextAwareLogger"] = None

# Attributes every LogRecord has; anything else on a record came from `extra`
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName", "correlation_id"}


class ContextAwareLogger:
    """
    Wraps a stdlib logger and appends `extra` to the message text.

    The extras are still passed through as record attributes for handlers
    that read them.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _emit(self, method: str, msg: str, extra: Optional[Dict[str, Any]] = None, **kwargs) -> None:
        extra = extra or {}
        if extra:
            msg = " | ".join([msg, *(f"{key}={value}" for key, value in extra.items())])
        getattr(self.logger, method)(msg, extra=extra, **kwargs)

    def set_level(self, level: Union[int, str]) -> None:
        self.logger.setLevel(level)

    def debug(self, msg, **kwargs):
        self._emit("debug", msg, **kwargs)

    def info(self, msg, **kwargs):
        self._emit("info", msg, **kwargs)

    def warning(self, msg, **kwargs):
        self._emit("warning", msg, **kwargs)

    def error(self, msg, **kwargs):
        self._emit("error", msg, **kwargs)

    def exception(self, msg, **kwargs):
        self._emit("exception", msg, **kwargs)


class CorrelationContextFilter(logging.Filter):
    """Stamps the thread's correlation id, when there is one, on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        from ..exceptions import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id
        return True


class LogsQueueHandler(logging.Handler):
    """
    Buffers records as JSON documents and sends them to a storage queue.

    Sending happens once `batch_size` records are buffered, and on flush or
    close. Without a connection string records stay buffered.
    """

    def __init__(self, queue_name: str, connection_string: Optional[str] = None, batch_size: int = 10):
        super().__init__()
        self.queue_name = queue_name
        self.connection_string = connection_string or os.getenv("AzureWebJobsStorage") or None
        self.batch_size = batch_size
        self.log_buffer: List[Dict[str, Any]] = []
        self._client: Optional[QueueClient] = None

    def _queue(self) -> QueueClient:
        if self._client is None:
            client = QueueClient.from_connection_string(
                conn_str=self.connection_string, queue_name=self.queue_name
            )
            try:
                client.create_queue()
            except ResourceExistsError:
                pass
            self._client = client
        return self._client

    @staticmethod
    def build_entry(record: logging.LogRecord) -> Dict[str, Any]:
        """The JSON document shipped for one record."""
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            entry["correlation_id"] = correlation_id

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
            }
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.log_buffer.append(self.build_entry(record))
        except Exception:
            self.handleError(record)
            return
        if len(self.log_buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self.log_buffer or not self.connection_string:
            return
        try:
            queue = self._queue()
            while self.log_buffer:
                queue.send_message(dumps(self.log_buffer[0]))
                self.log_buffer.pop(0)
        except AzureError as e:
            # Unsent records stay buffered for the next flush
            sys.stderr.write(f"Log shipping to '{self.queue_name}' failed: {e}\n")

    def close(self) -> None:
        self.flush()
        super().close()


def _level_number(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def configure_logging(function_name: str, config: "AppConfig") -> ContextAwareLogger:
    """
    Set up the host logger once at startup and make it the one `get_logger` returns.

    Args:
        function_name: Name of the function app, used in the logger name
        config: Log level, logs-queue flag and queue connection
    """
    global _configured_logger

    level = _level_number(config.logging.level)
    logger = logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{function_name}")
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    correlation = CorrelationContextFilter()
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    console.addFilter(correlation)
    logger.addHandler(console)

    ship_to_queue = config.features.enable_logs_queue
    if ship_to_queue:
        queue_handler = LogsQueueHandler(
            queue_name=config.queue.logs_queue_name,
            connection_string=config.queue.connection_string,
            batch_size=config.logging.queue_batch_size,
        )
        queue_handler.addFilter(correlation)
        logger.addHandler(queue_handler)

    _configured_logger = ContextAwareLogger(logger)
    _configured_logger.info(
        "Logging configured",
        extra={"function_name": function_name, "level": logging.getLevelName(level), "logs_queue": ship_to_queue},
    )
    return _configured_logger


def get_logger(log_level: Optional[Union[int, str]] = None) -> ContextAwareLogger:
    """The configured host logger, or the plain package logger before configuration."""
    if _configured_logger is not None:
        return _configured_logger

    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    level = log_level if log_level is not None else os.getenv("LOG_LEVEL")
    if level is not None:
        logger.setLevel(_level_number(level))
    return ContextAwareLogger(logger)
