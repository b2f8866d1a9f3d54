"""Pydantic schemas for the rental core."""

from .analytics_schema import (
    AnalyticsSnapshot,
    BillingSummary,
    CollectionReport,
    MonthlyIncome,
    OccupancyReport,
    RoomIncome,
    TrendPoint,
)
from .contract_schema import (
    ContractCreate,
    ContractDetail,
    ContractRead,
    ContractTransitionRead,
    ContractUpdate,
    ExpiringContract,
    RenewalTerms,
    SignatureCreate,
    SignatureRead,
    SignatureResult,
    SignatureSummary,
    SigningLinks,
)
from .inflation_schema import InflationRead, InflationUpsert, RentAdjustment, RentAdjustmentEntry
from .payment_schema import (
    BillingRunResult,
    GenerationResult,
    OverduePayment,
    PaymentCreate,
    PaymentRead,
    PaymentRecord,
)
from .property_schema import (
    BuildingCreate,
    BuildingDetail,
    BuildingRead,
    BuildingUpdate,
    RoomCreate,
    RoomDetail,
    RoomRead,
    RoomUpdate,
)
from .tenant_schema import TenantCreate, TenantRead, TenantUpdate

__all__ = [
    "AnalyticsSnapshot",
    "BillingRunResult",
    "BillingSummary",
    "BuildingCreate",
    "BuildingDetail",
    "BuildingRead",
    "BuildingUpdate",
    "CollectionReport",
    "ContractCreate",
    "ContractDetail",
    "ContractRead",
    "ContractTransitionRead",
    "ContractUpdate",
    "ExpiringContract",
    "GenerationResult",
    "InflationRead",
    "InflationUpsert",
    "MonthlyIncome",
    "OccupancyReport",
    "OverduePayment",
    "PaymentCreate",
    "PaymentRead",
    "PaymentRecord",
    "RenewalTerms",
    "RentAdjustment",
    "RentAdjustmentEntry",
    "RoomCreate",
    "RoomDetail",
    "RoomIncome",
    "RoomRead",
    "RoomUpdate",
    "SignatureCreate",
    "SignatureRead",
    "SignatureSummary",
    "SignatureResult",
    "SigningLinks",
    "TenantCreate",
    "TenantRead",
    "TenantUpdate",
    "TrendPoint",
]
