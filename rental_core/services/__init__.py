"""Service layer for business logic."""

from .analytics_service import AnalyticsService
from .base_service import SessionManagedService
from .building_service import BuildingService
from .contract_service import ContractService
from .inflation_service import InflationService
from .notification_service import NotificationService
from .payment_service import PaymentService
from .room_service import RoomService
from .signature_service import SignatureService
from .tenant_service import TenantService

__all__ = [
    "AnalyticsService",
    "SessionManagedService",
    "BuildingService",
    "ContractService",
    "InflationService",
    "NotificationService",
    "PaymentService",
    "RoomService",
    "SignatureService",
    "TenantService",
]
