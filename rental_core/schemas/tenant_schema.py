"""
Pydantic schemas for tenants (lessees).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TenantCreate(BaseModel):
    """
    Schema for creating a new tenant.

    Phone format and uniqueness are checked by TenantService so the caller
    gets a ValidationError or ConflictError rather than a schema error.
    """

    name: str
    phone: str
    email: Optional[str] = None
    id_card: Optional[str] = None
    line_user_id: Optional[str] = None
    address: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TenantUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    id_card: Optional[str] = None
    line_user_id: Optional[str] = None
    address: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TenantRead(BaseModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    id_card: Optional[str] = None
    line_user_id: Optional[str] = None
    address: Optional[str] = None
    contract_count: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
