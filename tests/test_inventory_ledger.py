from __future__ import annotations

import pytest

from roomify.config.database import Collections
from roomify.models.booking import BookingType
from roomify.services.inventory_ledger import InventoryLedger

from conftest import get_property, insert_property, run


@pytest.fixture
def ledger(ops) -> InventoryLedger:
    return InventoryLedger(ops)


def test_full_property_reserve_and_release(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops)

        await ledger.reserve(property_id, BookingType.FULL_PROPERTY)
        reserved = await get_property(ops, property_id)
        await ledger.release(property_id, BookingType.FULL_PROPERTY)
        released = await get_property(ops, property_id)
        return reserved, released

    reserved, released = run(scenario())

    assert reserved["status"] == "rented"
    assert reserved["availability"]["is_available"] is False
    assert released["status"] == "active"
    assert released["availability"]["is_available"] is True


def test_bed_reserve_keeps_room_open_until_last_bed(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, property_type="shared_room", total_beds=2)
        first = await ledger.reserve(property_id, BookingType.SHARED_ROOM_BED)
        second = await ledger.reserve(property_id, BookingType.SHARED_ROOM_BED)
        return first, second

    first, second = run(scenario())

    assert first["shared_room_details"] == {"total_beds": 2, "available_beds": 1, "current_occupants": 1}
    assert first["availability"]["is_available"] is True
    assert second["shared_room_details"]["available_beds"] == 0
    assert second["shared_room_details"]["current_occupants"] == 2
    assert second["availability"]["is_available"] is False


def test_bed_reserve_on_full_room_changes_nothing(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, property_type="shared_room", total_beds=1)
        await ledger.reserve(property_id, BookingType.SHARED_ROOM_BED)
        result = await ledger.reserve(property_id, BookingType.SHARED_ROOM_BED)
        return result, await get_property(ops, property_id)

    result, prop = run(scenario())

    assert result is None
    assert prop["shared_room_details"]["available_beds"] == 0
    assert prop["shared_room_details"]["current_occupants"] == 1


def test_bed_release_reopens_room(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, property_type="shared_room", total_beds=1)
        await ledger.reserve(property_id, BookingType.SHARED_ROOM_BED)
        return await ledger.release(property_id, BookingType.SHARED_ROOM_BED)

    released = run(scenario())

    assert released["shared_room_details"]["available_beds"] == 1
    assert released["shared_room_details"]["current_occupants"] == 0
    assert released["availability"]["is_available"] is True


def test_bed_release_never_goes_negative(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, property_type="shared_room", total_beds=2)
        result = await ledger.release(property_id, BookingType.SHARED_ROOM_BED)
        return result, await get_property(ops, property_id)

    result, prop = run(scenario())

    assert result is None
    assert prop["shared_room_details"] == {"total_beds": 2, "available_beds": 2, "current_occupants": 0}


def test_reconcile_rebuilds_bed_counters(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, property_type="shared_room", total_beds=3)
        # Drifted ledger: claims a full room while one bed is taken
        await ops.find_one_and_update(
            Collections.PROPERTIES,
            {"_id": (await get_property(ops, property_id))["_id"]},
            {"$set": {
                "shared_room_details.available_beds": 0,
                "shared_room_details.current_occupants": 3,
                "availability.is_available": False,
            }},
        )
        return await ledger.reconcile(property_id, approved_count=1)

    prop = run(scenario())

    assert prop["shared_room_details"] == {"total_beds": 3, "available_beds": 2, "current_occupants": 1}
    assert prop["availability"]["is_available"] is True


def test_reconcile_frees_rented_house_without_approved_bookings(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops)
        await ledger.reserve(property_id, BookingType.FULL_PROPERTY)
        return await ledger.reconcile(property_id, approved_count=0)

    prop = run(scenario())

    assert prop["status"] == "active"
    assert prop["availability"]["is_available"] is True


def test_reconcile_leaves_unrented_house_alone(ops, ledger):
    async def scenario():
        property_id = await insert_property(ops, status="inactive")
        return await ledger.reconcile(property_id, approved_count=0)

    prop = run(scenario())

    assert prop["status"] == "inactive"


def test_reconcile_unknown_property(ledger):
    assert run(ledger.reconcile("65f000000000000000000099", approved_count=0)) is None
