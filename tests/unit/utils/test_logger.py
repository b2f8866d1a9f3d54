"""
Unit tests for the logging utilities.

Covers ContextAwareLogger, CorrelationContextFilter, the queue handler's
entry format and configure_logging.
"""

import logging
import os
import sys
from unittest.mock import Mock, patch

import pytest

from rental_core.config import AppConfig, FeatureFlags, LoggingConfig, QueueConfig
from rental_core.exceptions import clear_correlation_id, set_correlation_id
from rental_core.utils import logger as utils_logger
from rental_core.utils.logger import (
    LogsQueueHandler,
    ContextAwareLogger,
    CorrelationContextFilter,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_configured_logger():
    previous = utils_logger._configured_logger
    with patch.dict(os.environ, {"AzureWebJobsStorage": ""}):
        yield
    utils_logger._configured_logger = previous
    clear_correlation_id()


def _record(msg="hello", **extra):
    record = logging.LogRecord("test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextAwareLogger:
    def test_extras_are_appended_to_message(self):
        base = Mock()
        logger = ContextAwareLogger(base)

        logger.info("Generated payments", extra={"created": 2, "period": "2025-01"})

        base.info.assert_called_once_with(
            "Generated payments | created=2 | period=2025-01",
            extra={"created": 2, "period": "2025-01"},
        )

    def test_plain_message(self):
        base = Mock()

        ContextAwareLogger(base).warning("No secret")

        base.warning.assert_called_once_with("No secret", extra={})

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error", "exception"])
    def test_every_level_delegates(self, level):
        base = Mock()

        getattr(ContextAwareLogger(base), level)("msg")

        getattr(base, level).assert_called_once()


class TestCorrelationContextFilter:
    def test_stamps_correlation_id(self):
        set_correlation_id("corr-7")
        record = _record()

        assert CorrelationContextFilter().filter(record) is True
        assert record.correlation_id == "corr-7"

    def test_without_correlation_id(self):
        record = _record()

        CorrelationContextFilter().filter(record)

        assert not hasattr(record, "correlation_id")


class TestLogsQueueHandler:
    @pytest.fixture
    def handler(self):
        return LogsQueueHandler(queue_name="logs-queue", connection_string="", batch_size=2)

    def test_entry_carries_extras(self, handler):
        entry = handler.build_entry(_record("Renewed contract", contract_id="c-2", correlation_id="x"))

        assert entry["message"] == "Renewed contract"
        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "x"
        assert entry["context"] == {"contract_id": "c-2"}

    def test_entry_includes_exception(self, handler):
        try:
            raise ValueError("bad rate")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        entry = handler.build_entry(record)

        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad rate"

    def test_flush_sends_buffer(self, handler):
        handler.connection_string = "UseDevelopmentStorage=true"
        queue_client = Mock()
        with patch.object(utils_logger.QueueClient, "from_connection_string", return_value=queue_client):
            handler.emit(_record("one"))
            handler.emit(_record("two"))

        assert queue_client.send_message.call_count == 2
        assert handler.log_buffer == []

    def test_no_connection_keeps_buffer(self, handler):
        handler.emit(_record("one"))
        handler.flush()

        assert len(handler.log_buffer) == 1


class TestConfigureLogging:
    def test_console_only(self):
        config = AppConfig(
            logging=LoggingConfig(level="DEBUG"),
            features=FeatureFlags(enable_logs_queue=False),
        )

        wrapped = configure_logging("rental_api", config)

        assert isinstance(wrapped, ContextAwareLogger)
        assert wrapped.logger.level == logging.DEBUG
        assert len(wrapped.logger.handlers) == 1
        assert get_logger() is wrapped

    def test_queue_handler_added(self):
        config = AppConfig(
            features=FeatureFlags(enable_logs_queue=True),
            queue=QueueConfig(connection_string=""),
        )

        wrapped = configure_logging("rental_cron", config)

        assert any(isinstance(h, LogsQueueHandler) for h in wrapped.logger.handlers)

    def test_fallback_logger_before_configuration(self):
        utils_logger._configured_logger = None

        logger = get_logger("WARNING")

        assert logger.logger.name == "rental_core"
        assert logger.logger.level == logging.WARNING
