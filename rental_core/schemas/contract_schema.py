"""
Pydantic schemas for contracts, their transition log and signatures.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import ContractStatus, SignerRole
from .payment_schema import PaymentRead


class ContractCreate(BaseModel):
    """
    Schema for creating a new contract.

    Date range and amount rules are enforced by ContractService.
    """

    room_id: str
    tenant_id: str
    start_date: date
    end_date: date
    rent_amount: float
    deposit: float = 0
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ContractUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    rent_amount: Optional[float] = None
    deposit: Optional[float] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RenewalTerms(BaseModel):
    """Terms of the contract that replaces a renewed one."""

    start_date: date
    end_date: date
    rent_amount: float
    deposit: float = 0
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class ContractRead(BaseModel):
    id: str
    room_id: str
    tenant_id: str
    start_date: date
    end_date: date
    rent_amount: float
    deposit: float
    status: ContractStatus
    version: int
    previous_id: Optional[str] = None
    pdf_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ContractTransitionRead(BaseModel):
    id: str
    contract_id: str
    from_state: ContractStatus
    to_state: ContractStatus
    reason: Optional[str] = None
    triggered_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignatureRead(BaseModel):
    """Signature metadata; the image payload itself is not echoed back."""

    id: str
    contract_id: str
    signer_role: SignerRole
    signer_name: str
    signature_hash: str
    ip_address: Optional[str] = None
    signed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignatureSummary(BaseModel):
    """Who signed and when; all an anonymous signing page is shown."""

    id: str
    signer_role: SignerRole
    signer_name: str
    signed_at: datetime


class ContractDetail(ContractRead):
    """Contract with everything the detail view and the signing page need."""

    room_number: str
    building_id: str
    building_name: str
    tenant_name: str
    tenant_phone: str
    signatures: List[SignatureRead] = Field(default_factory=list)
    transitions: List[ContractTransitionRead] = Field(default_factory=list)
    payments: List[PaymentRead] = Field(default_factory=list)
    renewal_ids: List[str] = Field(default_factory=list)


class ExpiringContract(BaseModel):
    contract_id: str
    room_number: str
    building_name: str
    tenant_name: str
    end_date: date
    days_remaining: int


class SignatureCreate(BaseModel):
    contract_id: str
    signer_role: SignerRole
    signer_name: str
    signature_data: str
    ip_address: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SignatureResult(BaseModel):
    signature: SignatureRead
    all_signed: bool


class SigningLinks(BaseModel):
    contract_id: str
    owner_url: str
    tenant_url: str
    expires_at: datetime

