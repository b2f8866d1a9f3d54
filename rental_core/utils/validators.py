"""
Input checks shared by the services. Each raises the package ValidationError.
"""

import re
from typing import Optional

from ..exceptions import ErrorCode, ValidationError, validation_failed

PHONE_PATTERN = re.compile(r"^[0-9]{3}-?[0-9]{3}-?[0-9]{4}$")
SIGNATURE_DATA_PREFIX = "data:image/"


def require_text(value: Optional[str], field: str) -> str:
    """Trimmed non-empty string, or ValidationError(MISSING_REQUIRED)."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(
            f"{field} is required",
            field=field,
            error_code=ErrorCode.MISSING_REQUIRED,
        )
    return cleaned


def optional_text(value: Optional[str]) -> Optional[str]:
    """Trimmed string, with blank collapsed to None."""
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def require_positive(value: Optional[float], field: str) -> float:
    if value is None or value <= 0:
        raise validation_failed(field, value, "must be greater than 0")
    return value


def require_non_negative(value: Optional[float], field: str) -> float:
    if value is None or value < 0:
        raise validation_failed(field, value, "must not be negative")
    return value


def normalize_phone(value: Optional[str]) -> str:
    """Strip whitespace and check the NNN-NNN-NNNN shape (dashes optional)."""
    phone = re.sub(r"\s+", "", value or "")
    if not phone:
        raise ValidationError("phone is required", field="phone", error_code=ErrorCode.MISSING_REQUIRED)
    if not PHONE_PATTERN.match(phone):
        raise ValidationError(
            "Invalid phone format",
            field="phone",
            error_code=ErrorCode.INVALID_FORMAT,
            value=phone,
        )
    return phone


def require_signature_payload(value: Optional[str]) -> str:
    if not value or not value.startswith(SIGNATURE_DATA_PREFIX):
        raise ValidationError(
            "Signature data must be an image data URL",
            field="signature_data",
            error_code=ErrorCode.INVALID_FORMAT,
        )
    return value


def require_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise validation_failed("month", month, "must be between 1 and 12")
    if year < 1900:
        raise validation_failed("year", year, "must be a four digit year")
