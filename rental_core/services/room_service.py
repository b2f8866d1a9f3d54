"""
Room CRUD and status management.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..context.operation_context import operation
from ..context.service_decorators import handle_service_errors
from ..db.db_contract_models import Contract
from ..db.db_property_models import Building, Room
from ..enums import ROOM_HOLDING_STATUSES, ContractStatus, RoomStatus
from ..exceptions import ConflictError, duplicate
from ..schemas.property_schema import RoomCreate, RoomDetail, RoomRead, RoomUpdate
from ..utils.crud_helpers import require_record
from ..utils.validators import optional_text, require_positive, require_text
from .base_service import SessionManagedService

CURRENT_CONTRACT_STATUSES = (ContractStatus.ACTIVE, ContractStatus.EXPIRING, ContractStatus.SIGNED)


def room_read(room: Room) -> RoomRead:
    read = RoomRead.model_validate(room)
    return read.model_copy(update={"building_name": room.building.name if room.building else None})


class RoomService(SessionManagedService):
    """Manage rooms. Room numbers are unique within a building."""

    @operation()
    @handle_service_errors()
    def list_rooms(
        self, building_id: Optional[str] = None, status: Optional[RoomStatus] = None
    ) -> List[RoomRead]:
        with self.transaction() as session:
            query = session.query(Room).join(Building)
            if building_id:
                query = query.filter(Room.building_id == building_id)
            if status:
                query = query.filter(Room.status == RoomStatus(status))
            rooms = query.order_by(Building.name, Room.floor, Room.room_number).all()
            return [room_read(room) for room in rooms]

    def find_vacant(self) -> List[RoomRead]:
        return self.list_rooms(status=RoomStatus.VACANT)

    @operation()
    @handle_service_errors()
    def get_room(self, room_id: str) -> RoomDetail:
        with self.transaction() as session:
            room = require_record(session, Room, room_id)
            current = (
                session.query(Contract)
                .filter(
                    Contract.room_id == room_id,
                    Contract.status.in_(CURRENT_CONTRACT_STATUSES),
                )
                .order_by(Contract.start_date.desc())
                .first()
            )
            return RoomDetail(
                **room_read(room).model_dump(),
                current_contract_id=current.id if current else None,
                current_tenant_name=current.tenant.name if current else None,
            )

    @operation()
    @handle_service_errors()
    def create_room(self, data: RoomCreate) -> RoomRead:
        room_number = require_text(data.room_number, "room_number")
        base_rent = require_positive(data.base_rent, "base_rent")
        try:
            with self.transaction() as session:
                require_record(session, Building, data.building_id)
                self._ensure_number_free(session, data.building_id, room_number)
                room = Room(
                    building_id=data.building_id,
                    room_number=room_number,
                    floor=data.floor or 1,
                    size_sqm=data.size_sqm,
                    base_rent=base_rent,
                    status=RoomStatus(data.status or RoomStatus.VACANT),
                    description=optional_text(data.description),
                )
                session.add(room)
                session.flush()
                self.logger.info(
                    "Created room",
                    extra={"room_id": room.id, "building_id": data.building_id},
                )
                return room_read(room)
        except IntegrityError as e:
            raise duplicate(
                "Room", cause=e, building_id=data.building_id, room_number=room_number
            ) from e

    @operation()
    @handle_service_errors()
    def update_room(self, room_id: str, data: RoomUpdate) -> RoomRead:
        try:
            with self.transaction() as session:
                room = require_record(session, Room, room_id)
                if data.room_number is not None:
                    room_number = require_text(data.room_number, "room_number")
                    if room_number != room.room_number:
                        self._ensure_number_free(session, room.building_id, room_number)
                        room.room_number = room_number
                if data.base_rent is not None:
                    room.base_rent = require_positive(data.base_rent, "base_rent")
                if data.description is not None:
                    room.description = optional_text(data.description)
                self._apply_updates(
                    room,
                    {
                        "floor": data.floor,
                        "size_sqm": data.size_sqm,
                        "status": RoomStatus(data.status) if data.status else None,
                    },
                )
                session.flush()
                return room_read(room)
        except IntegrityError as e:
            raise duplicate("Room", cause=e, room_id=room_id) from e

    @operation()
    @handle_service_errors()
    def update_status(self, room_id: str, status: RoomStatus) -> RoomRead:
        with self.transaction() as session:
            room = require_record(session, Room, room_id)
            room.status = RoomStatus(status)
            session.flush()
            return room_read(room)

    @operation()
    @handle_service_errors()
    def delete_room(self, room_id: str) -> None:
        with self.transaction() as session:
            room = require_record(session, Room, room_id)
            blocking = (
                session.query(Contract)
                .filter(Contract.room_id == room_id, Contract.status.in_(ROOM_HOLDING_STATUSES))
                .count()
            )
            if blocking:
                raise ConflictError(
                    "Cannot delete room with active or pending contracts",
                    room_id=room_id,
                    contract_count=blocking,
                )
            session.delete(room)
            self.logger.info("Deleted room", extra={"room_id": room_id})

    @staticmethod
    def _ensure_number_free(session, building_id: str, room_number: str) -> None:
        taken = (
            session.query(Room.id)
            .filter(Room.building_id == building_id, Room.room_number == room_number)
            .first()
        )
        if taken:
            raise duplicate("Room", building_id=building_id, room_number=room_number)
