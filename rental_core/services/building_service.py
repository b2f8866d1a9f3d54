"""
Building CRUD with direct SQLAlchemy access.
"""

from typing import List

from sqlalchemy import func

from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_property_models import Building, Room
from ..exceptions import ConflictError
from ..schemas.property_schema import (
    BuildingCreate,
    BuildingDetail,
    BuildingRead,
    BuildingUpdate,
    RoomRead,
)
from ..utils.crud_helpers import require_record
from ..utils.validators import optional_text, require_text
from .base_service import SessionManagedService


def _building_read(building: Building, room_count: int) -> BuildingRead:
    return BuildingRead(
        id=building.id,
        name=building.name,
        address=building.address,
        room_count=room_count,
        created_at=building.created_at,
    )


class BuildingService(SessionManagedService):
    """Manage buildings. A building can only be deleted once it has no rooms."""

    @operation()
    @handle_service_errors()
    def list_buildings(self) -> List[BuildingRead]:
        with self.transaction() as session:
            rows = (
                session.query(Building, func.count(Room.id))
                .outerjoin(Room, Room.building_id == Building.id)
                .group_by(Building.id)
                .order_by(Building.name)
                .all()
            )
            return [_building_read(building, count) for building, count in rows]

    @operation()
    @handle_service_errors()
    def get_building(self, building_id: str) -> BuildingDetail:
        with self.transaction() as session:
            building = require_record(session, Building, building_id)
            rooms = (
                session.query(Room)
                .filter(Room.building_id == building_id)
                .order_by(Room.floor, Room.room_number)
                .all()
            )
            room_reads = [
                RoomRead.model_validate(room).model_copy(update={"building_name": building.name})
                for room in rooms
            ]
            return BuildingDetail(
                **_building_read(building, len(rooms)).model_dump(), rooms=room_reads
            )

    @operation()
    @handle_service_errors()
    def create_building(self, data: BuildingCreate) -> BuildingRead:
        name = require_text(data.name, "name")
        with self.transaction() as session:
            building = Building(name=name, address=optional_text(data.address))
            session.add(building)
            session.flush()
            self.logger.info("Created building", extra={"building_id": building.id})
            return _building_read(building, 0)

    @operation()
    @handle_service_errors()
    def update_building(self, building_id: str, data: BuildingUpdate) -> BuildingRead:
        with self.transaction() as session:
            building = require_record(session, Building, building_id)
            if data.name is not None:
                building.name = require_text(data.name, "name")
            if data.address is not None:
                building.address = optional_text(data.address)
            session.flush()
            room_count = session.query(Room).filter(Room.building_id == building_id).count()
            return _building_read(building, room_count)

    @operation()
    @handle_service_errors()
    def delete_building(self, building_id: str) -> None:
        with self.transaction() as session:
            building = require_record(session, Building, building_id)
            room_count = session.query(Room).filter(Room.building_id == building_id).count()
            if room_count > 0:
                raise ConflictError(
                    "Cannot delete building with rooms",
                    building_id=building_id,
                    room_count=room_count,
                )
            session.delete(building)
            self.logger.info("Deleted building", extra={"building_id": building_id})
