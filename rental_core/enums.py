"""
Enums used across the rental_core package.

This module contains enum definitions that are shared by the database models,
schemas and services to avoid circular import issues.
"""

import enum


class ContractStatus(str, enum.Enum):
    """Lifecycle states of a lease contract."""

    DRAFT = "DRAFT"
    PENDING_SIGNATURE = "PENDING_SIGNATURE"
    SIGNED = "SIGNED"
    ACTIVE = "ACTIVE"
    EXPIRING = "EXPIRING"
    RENEWED = "RENEWED"
    TERMINATED = "TERMINATED"


class RoomStatus(str, enum.Enum):
    VACANT = "VACANT"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"


class PaymentStatus(str, enum.Enum):
    """Collection states of a monthly payment row."""

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class SignerRole(str, enum.Enum):
    OWNER = "OWNER"
    TENANT = "TENANT"


class RentRecommendation(str, enum.Enum):
    """Outcome of a rent-adjustment calculation."""

    INCREASE = "INCREASE"
    MAINTAIN = "MAINTAIN"
    REVIEW = "REVIEW"


# Contracts in these states hold the room; a second one cannot be created.
ROOM_HOLDING_STATUSES = (
    ContractStatus.ACTIVE,
    ContractStatus.EXPIRING,
    ContractStatus.SIGNED,
    ContractStatus.PENDING_SIGNATURE,
)

BILLABLE_STATUSES = (ContractStatus.ACTIVE, ContractStatus.EXPIRING)

AGEABLE_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIAL)
