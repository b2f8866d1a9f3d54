"""
Constants and enums for the rental core.

This module centralizes magic strings and fixed business numbers used
throughout the package.
"""

from enum import Enum


class QueueName(str, Enum):
    """Standard queue names used by the function app."""

    LOGS = "logs-queue"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    APP_URL = "APP_URL"
    LOG_LEVEL = "LOG_LEVEL"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"
    LINE_CHANNEL_ACCESS_TOKEN = "LINE_CHANNEL_ACCESS_TOKEN"
    LINE_CHANNEL_SECRET = "LINE_CHANNEL_SECRET"
    OWNER_LINE_IDS = "OWNER_LINE_IDS"
    OPENAI_API_KEY = "OPENAI_API_KEY"
    SIGNING_SECRET = "SIGNING_SECRET"
    CRON_SECRET = "CRON_SECRET"


class TriggeredBy(str, Enum):
    """Well-known actors recorded on contract transitions."""

    SYSTEM = "system"
    API = "api"
    SIGNATURE_SERVICE = "signature_service"
    CRON = "cron"


# Billing
PAYMENT_DUE_DAY = 5
EXPIRY_WINDOW_DAYS = 30
RECENT_ACTIVITY_DAYS = 30
INCOME_TREND_MONTHS = 6

# Signing links
SIGNING_TOKEN_ALGORITHM = "HS256"
SIGNING_TOKEN_TTL_HOURS = 72

THAI_MONTH_ABBREVIATIONS = (
    "",
    "ม.ค.",
    "ก.พ.",
    "มี.ค.",
    "เม.ย.",
    "พ.ค.",
    "มิ.ย.",
    "ก.ค.",
    "ส.ค.",
    "ก.ย.",
    "ต.ค.",
    "พ.ย.",
    "ธ.ค.",
)

BUDDHIST_ERA_OFFSET = 543
