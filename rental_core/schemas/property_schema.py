"""
Pydantic schemas for buildings and rooms.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import RoomStatus


class BuildingCreate(BaseModel):
    name: str
    address: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class BuildingUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class BuildingRead(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    room_count: int = 0
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RoomCreate(BaseModel):
    building_id: str
    room_number: str
    floor: int = 1
    size_sqm: Optional[float] = None
    base_rent: float
    status: RoomStatus = RoomStatus.VACANT
    description: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RoomUpdate(BaseModel):
    room_number: Optional[str] = None
    floor: Optional[int] = None
    size_sqm: Optional[float] = None
    base_rent: Optional[float] = None
    status: Optional[RoomStatus] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RoomRead(BaseModel):
    id: str
    building_id: str
    building_name: Optional[str] = None
    room_number: str
    floor: int
    size_sqm: Optional[float] = None
    base_rent: float
    status: RoomStatus
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BuildingDetail(BuildingRead):
    """Building with its rooms ordered by floor and number."""

    rooms: List[RoomRead] = Field(default_factory=list)


class RoomDetail(RoomRead):
    """Room with the contract currently holding it, if any."""

    current_contract_id: Optional[str] = None
    current_tenant_name: Optional[str] = None
