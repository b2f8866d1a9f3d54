"""
SQLAlchemy models and database plumbing for the rental core.
"""

from .db_base import Base, TimestampMixin, UUIDMixin
from .db_config import (
    DatabaseConfig,
    DatabaseManager,
    get_development_config,
    import_all_models,
    init_db,
)
from .db_contract_models import Contract, ContractSignature, ContractStateTransition
from .db_inflation_models import InflationIndex
from .db_payment_models import Payment
from .db_property_models import Building, Room
from .db_tenant_models import Tenant

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "get_development_config",
    "import_all_models",
    "init_db",
    # Models
    "Building",
    "Room",
    "Tenant",
    "Contract",
    "ContractStateTransition",
    "ContractSignature",
    "Payment",
    "InflationIndex",
]
