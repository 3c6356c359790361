from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional

import pytest
from mongomock_motor import AsyncMongoMockClient

from roomify.config.database import Collections
from roomify.database.db_operations import DBOperations
from roomify.models.booking import BookingRequest, ProposedDuration
from roomify.services.booking_service import BookingService

NOW = datetime(2026, 3, 1, 12, 0, 0)
MOVE_IN = datetime(2026, 4, 1)

LANDLORD = "landlord-1"
OTHER_LANDLORD = "landlord-2"
TENANT = "tenant-1"
TENANT_B = "tenant-2"
TENANT_C = "tenant-3"


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    async def notify(self, event, booking, recipient_id, message=None) -> bool:
        self.events.append((event.value, booking.id, recipient_id))
        return True

    def of(self, event: str) -> list[tuple]:
        return [entry for entry in self.events if entry[0] == event]


def run(coro):
    return asyncio.run(coro)


async def insert_property(
    ops: DBOperations,
    *,
    property_type: str = "full_house",
    status: str = "active",
    is_available: bool = True,
    total_beds: Optional[int] = None,
    owner_id: str = LANDLORD,
    amount: float = 20000,
    security_deposit: float = 10000,
) -> str:
    document = {
        "owner_id": owner_id,
        "title": "Test property",
        "property_type": property_type,
        "status": status,
        "rent": {"amount": amount, "currency": "PKR", "security_deposit": security_deposit},
        "availability": {"is_available": is_available},
        "inquiries": 0,
    }
    if total_beds is not None:
        document["shared_room_details"] = {
            "total_beds": total_beds,
            "available_beds": total_beds,
            "current_occupants": 0,
        }
    created = await ops.create(Collections.PROPERTIES, document)
    return str(created["_id"])


async def get_property(ops: DBOperations, property_id: str) -> dict:
    return await ops.get_by_id(Collections.PROPERTIES, property_id)


def booking_request(
    property_id: str,
    tenant_id: str = TENANT,
    bed_number: Optional[int] = None,
    value: int = 6,
    unit: str = "months",
) -> BookingRequest:
    return BookingRequest(
        property_id=property_id,
        tenant_id=tenant_id,
        request_message="I would like to rent this place.",
        proposed_move_in_date=MOVE_IN,
        proposed_duration=ProposedDuration(value=value, unit=unit),
        bed_number=bed_number,
    )


@pytest.fixture
def database():
    return AsyncMongoMockClient()["roomify_test"]


@pytest.fixture
def ops(database) -> DBOperations:
    return DBOperations(database)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(ops, clock, notifier) -> BookingService:
    return BookingService(ops=ops, notifier=notifier, clock=clock)
