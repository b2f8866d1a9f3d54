"""Tests for BuildingService and RoomService."""

import pytest

from rental_core.enums import ContractStatus, RoomStatus
from rental_core.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from rental_core.schemas.property_schema import (
    BuildingCreate,
    BuildingUpdate,
    RoomCreate,
    RoomUpdate,
)
from tests.fixtures.factories import BuildingFactory, ContractFactory, RoomFactory


class TestBuildingService:
    def test_create_and_list(self, building_service, db_session):
        building_service.create_building(BuildingCreate(name="  Riverside ", address="Bangkok"))
        building_service.create_building(BuildingCreate(name="Garden"))

        buildings = building_service.list_buildings()

        assert [(b.name, b.room_count) for b in buildings] == [("Garden", 0), ("Riverside", 0)]

    def test_name_required(self, building_service, db_session):
        with pytest.raises(ValidationError) as exc_info:
            building_service.create_building(BuildingCreate(name=" "))

        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED

    def test_detail_lists_rooms_by_floor(self, building_service, db_session):
        building = BuildingFactory()
        RoomFactory(building=building, floor=2, room_number="201")
        RoomFactory(building=building, floor=1, room_number="102")
        RoomFactory(building=building, floor=1, room_number="101")

        detail = building_service.get_building(building.id)

        assert detail.room_count == 3
        assert [r.room_number for r in detail.rooms] == ["101", "102", "201"]
        assert {r.building_name for r in detail.rooms} == {building.name}

    def test_update(self, building_service, db_session):
        building = BuildingFactory(name="Old")

        updated = building_service.update_building(building.id, BuildingUpdate(name="New", address=""))

        assert updated.name == "New"
        assert updated.address is None

    def test_delete_requires_no_rooms(self, building_service, db_session):
        occupied = RoomFactory().building
        empty = BuildingFactory()

        with pytest.raises(ConflictError):
            building_service.delete_building(occupied.id)

        building_service.delete_building(empty.id)
        with pytest.raises(NotFoundError):
            building_service.get_building(empty.id)


class TestRoomService:
    def test_create_room(self, room_service, db_session):
        building = BuildingFactory(name="Garden")

        room = room_service.create_room(
            RoomCreate(building_id=building.id, room_number=" 305 ", floor=3, base_rent=5500)
        )

        assert room.room_number == "305"
        assert room.status == RoomStatus.VACANT
        assert room.building_name == "Garden"

    def test_room_number_unique_per_building(self, room_service, db_session):
        existing = RoomFactory(room_number="101")
        other_building = BuildingFactory()

        with pytest.raises(ConflictError) as exc_info:
            room_service.create_room(
                RoomCreate(building_id=existing.building_id, room_number="101", base_rent=5000)
            )
        assert exc_info.value.error_code == ErrorCode.DUPLICATE

        room = room_service.create_room(
            RoomCreate(building_id=other_building.id, room_number="101", base_rent=5000)
        )
        assert room.building_id == other_building.id

    def test_base_rent_must_be_positive(self, room_service, db_session):
        building = BuildingFactory()

        with pytest.raises(ValidationError):
            room_service.create_room(RoomCreate(building_id=building.id, room_number="1", base_rent=0))

    def test_unknown_building(self, room_service, db_session):
        with pytest.raises(NotFoundError):
            room_service.create_room(RoomCreate(building_id="missing", room_number="1", base_rent=100))

    def test_list_and_filter(self, room_service, db_session):
        building = BuildingFactory()
        RoomFactory(building=building, room_number="101")
        RoomFactory(building=building, room_number="102", status=RoomStatus.OCCUPIED)
        RoomFactory(status=RoomStatus.MAINTENANCE)

        assert len(room_service.list_rooms()) == 3
        assert [r.room_number for r in room_service.list_rooms(building_id=building.id)] == ["101", "102"]
        assert [r.room_number for r in room_service.find_vacant()] == ["101"]

    def test_detail_shows_current_contract(self, room_service, db_session):
        contract = ContractFactory()

        detail = room_service.get_room(contract.room_id)

        assert detail.current_contract_id == contract.id
        assert detail.current_tenant_name == contract.tenant.name

    def test_update_room(self, room_service, db_session):
        room = RoomFactory(room_number="101", base_rent=5000)

        updated = room_service.update_room(
            room.id, RoomUpdate(room_number="101A", base_rent=5200, status=RoomStatus.MAINTENANCE)
        )

        assert updated.room_number == "101A"
        assert updated.base_rent == 5200
        assert updated.status == RoomStatus.MAINTENANCE

    def test_update_status(self, room_service, db_session):
        room = RoomFactory()

        assert room_service.update_status(room.id, RoomStatus.MAINTENANCE).status == RoomStatus.MAINTENANCE

    @pytest.mark.parametrize("status", [ContractStatus.ACTIVE, ContractStatus.PENDING_SIGNATURE])
    def test_delete_blocked_by_holding_contract(self, room_service, db_session, status):
        contract = ContractFactory(status=status)

        with pytest.raises(ConflictError):
            room_service.delete_room(contract.room_id)

        assert room_service.get_room(contract.room_id).id == contract.room_id

    def test_delete_free_room(self, room_service, db_session):
        room = RoomFactory()

        room_service.delete_room(room.id)

        with pytest.raises(NotFoundError):
            room_service.get_room(room.id)
