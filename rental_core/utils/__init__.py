"""Helpers shared by the services, the API layer and the integrations."""

from .crud_helpers import get_record_by_id, require_record
from .hash_utils import calculate_data_hash, hashes_match, hmac_sha256_base64
from .logger import (
    ContextAwareLogger,
    CorrelationContextFilter,
    LogsQueueHandler,
    configure_logging,
    get_logger,
)

__all__ = [
    "ContextAwareLogger",
    "CorrelationContextFilter",
    "LogsQueueHandler",
    "calculate_data_hash",
    "configure_logging",
    "get_logger",
    "get_record_by_id",
    "hashes_match",
    "hmac_sha256_base64",
    "require_record",
]
