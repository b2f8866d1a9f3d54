"""
Lease contract models: the contract itself, its append-only transition log
and the per-role signatures.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..enums import ContractStatus, SignerRole
from ..utils.date_utils import utc_now
from .db_base import Base, TimestampMixin, UUIDMixin


class Contract(Base, UUIDMixin, TimestampMixin):
    """Lease of one room to one tenant for a date range."""

    __tablename__ = "contract"

    room_id = Column(String(36), ForeignKey("room.id"), nullable=False)
    tenant_id = Column(String(36), ForeignKey("tenant.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    rent_amount = Column(Float, nullable=False)
    deposit = Column(Float, nullable=False, default=0)
    status = Column(
        Enum(ContractStatus, name="contract_status", native_enum=False, length=30),
        nullable=False,
        default=ContractStatus.DRAFT,
    )
    version = Column(Integer, nullable=False, default=1)
    # Back-reference along the renewal chain, never an ownership edge
    previous_id = Column(String(36), ForeignKey("contract.id"), nullable=True)
    pdf_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    room = relationship("Room", back_populates="contracts")
    tenant = relationship("Tenant", back_populates="contracts")
    previous = relationship("Contract", remote_side="Contract.id", foreign_keys=[previous_id])
    transitions = relationship(
        "ContractStateTransition",
        back_populates="contract",
        order_by="ContractStateTransition.created_at",
    )
    signatures = relationship(
        "ContractSignature",
        back_populates="contract",
        order_by="ContractSignature.signed_at",
    )
    payments = relationship("Payment", back_populates="contract")

    __table_args__ = (
        Index("ix_contract_status", "status"),
        Index("ix_contract_room_status", "room_id", "status"),
        Index("ix_contract_end_date", "end_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contract(id='{self.id}', room_id='{self.room_id}', "
            f"status='{self.status}', version={self.version})>"
        )


class ContractStateTransition(Base, UUIDMixin):
    """One row per status change, including the synthetic DRAFT -> DRAFT on creation."""

    __tablename__ = "contract_state_transition"

    contract_id = Column(String(36), ForeignKey("contract.id"), nullable=False)
    from_state = Column(
        Enum(ContractStatus, name="contract_status", native_enum=False, length=30), nullable=False
    )
    to_state = Column(
        Enum(ContractStatus, name="contract_status", native_enum=False, length=30), nullable=False
    )
    reason = Column(String(500), nullable=True)
    triggered_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    contract = relationship("Contract", back_populates="transitions")

    __table_args__ = (Index("ix_transition_contract_timeline", "contract_id", "created_at"),)


class ContractSignature(Base, UUIDMixin):
    """A signature captured for one role on one contract."""

    __tablename__ = "contract_signature"

    contract_id = Column(String(36), ForeignKey("contract.id"), nullable=False)
    signer_role = Column(
        Enum(SignerRole, name="signer_role", native_enum=False, length=10), nullable=False
    )
    signer_name = Column(String(200), nullable=False)
    signature_data = Column(Text, nullable=False)
    signature_hash = Column(String(64), nullable=False)
    ip_address = Column(String(64), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    contract = relationship("Contract", back_populates="signatures")

    __table_args__ = (
        UniqueConstraint("contract_id", "signer_role", name="uq_signature_contract_role"),
    )
