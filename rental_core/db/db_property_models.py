"""
Building and room models.

Just the data structure - business rules live in the services.
"""

from sqlalchemy import Column, Enum, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..enums import RoomStatus
from .db_base import Base, TimestampMixin, UUIDMixin


class Building(Base, UUIDMixin, TimestampMixin):
    """A building owning a set of rooms."""

    __tablename__ = "building"

    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=True)

    rooms = relationship("Room", back_populates="building", order_by="Room.room_number")

    def __repr__(self) -> str:
        return f"<Building(id='{self.id}', name='{self.name}')>"


class Room(Base, UUIDMixin, TimestampMixin):
    """A rentable room; status follows the contract lifecycle."""

    __tablename__ = "room"

    building_id = Column(String(36), ForeignKey("building.id"), nullable=False)
    room_number = Column(String(20), nullable=False)
    floor = Column(Integer, nullable=False, default=1)
    size_sqm = Column(Float, nullable=True)
    base_rent = Column(Float, nullable=False)
    status = Column(
        Enum(RoomStatus, name="room_status", native_enum=False, length=20),
        nullable=False,
        default=RoomStatus.VACANT,
    )
    description = Column(Text, nullable=True)

    building = relationship("Building", back_populates="rooms")
    contracts = relationship("Contract", back_populates="room")

    __table_args__ = (
        UniqueConstraint("building_id", "room_number", name="uq_room_building_number"),
        Index("ix_room_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Room(id='{self.id}', room_number='{self.room_number}', status='{self.status}')>"
