"""
Inventory Ledger - availability flags and bed counters on a property.

reserve() and release() are single conditional updates against the
properties collection. They are issued after the booking status write, so a
crash in between leaves the ledger one step behind the bookings; reconcile()
recomputes it from the approved bookings when that happens.
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from roomify.config.database import Collections
from roomify.database.db_operations import DBOperations, db_ops
from roomify.models.booking import BookingType
from roomify.models.property import PropertyStatus, PropertyType
from roomify.utils.helpers import to_object_id

logger = logging.getLogger(__name__)

AVAILABLE_BEDS = "shared_room_details.available_beds"
CURRENT_OCCUPANTS = "shared_room_details.current_occupants"
IS_AVAILABLE = "availability.is_available"


class InventoryLedger:

    def __init__(self, ops: Optional[DBOperations] = None):
        self.ops = ops or db_ops

    async def reserve(
        self,
        property_id: str,
        booking_type: BookingType,
        now: Optional[datetime] = None,
    ) -> Optional[Dict]:
        """Take one unit of inventory for an approved booking.

        Returns the property document after the update, or None when there
        was nothing left to take.
        """
        object_id = to_object_id(property_id)

        if booking_type == BookingType.FULL_PROPERTY:
            return await self.ops.find_one_and_update(
                Collections.PROPERTIES,
                {"_id": object_id},
                {"$set": {IS_AVAILABLE: False, "status": PropertyStatus.RENTED.value}},
                now=now,
            )

        doc = await self.ops.find_one_and_update(
            Collections.PROPERTIES,
            {"_id": object_id, AVAILABLE_BEDS: {"$gt": 0}},
            {"$inc": {AVAILABLE_BEDS: -1, CURRENT_OCCUPANTS: 1}},
            now=now,
        )
        if doc is None:
            logger.warning("⚠️  No free bed left to reserve on property %s", property_id)
            return None

        if doc["shared_room_details"]["available_beds"] <= 0:
            # Guarded so a bed released in the meantime keeps the room open
            closed = await self.ops.find_one_and_update(
                Collections.PROPERTIES,
                {"_id": object_id, AVAILABLE_BEDS: {"$lte": 0}},
                {"$set": {IS_AVAILABLE: False}},
                now=now,
            )
            doc = closed or doc
        return doc

    async def release(
        self,
        property_id: str,
        booking_type: BookingType,
        now: Optional[datetime] = None,
    ) -> Optional[Dict]:
        """Give back the unit taken by reserve(); a freed bed always reopens the room."""
        object_id = to_object_id(property_id)

        if booking_type == BookingType.FULL_PROPERTY:
            return await self.ops.find_one_and_update(
                Collections.PROPERTIES,
                {"_id": object_id},
                {"$set": {IS_AVAILABLE: True, "status": PropertyStatus.ACTIVE.value}},
                now=now,
            )

        doc = await self.ops.find_one_and_update(
            Collections.PROPERTIES,
            {"_id": object_id, CURRENT_OCCUPANTS: {"$gt": 0}},
            {
                "$inc": {AVAILABLE_BEDS: 1, CURRENT_OCCUPANTS: -1},
                "$set": {IS_AVAILABLE: True},
            },
            now=now,
        )
        if doc is None:
            logger.warning("⚠️  No occupied bed to release on property %s", property_id)
        return doc

    async def reconcile(
        self,
        property_id: str,
        approved_count: int,
        now: Optional[datetime] = None,
    ) -> Optional[Dict]:
        """Overwrite the ledger with values derived from the approved bookings."""
        prop = await self.ops.get_by_id(Collections.PROPERTIES, property_id)
        if prop is None:
            return None

        if prop.get("property_type") == PropertyType.SHARED_ROOM.value:
            total_beds = prop["shared_room_details"]["total_beds"]
            available = max(total_beds - approved_count, 0)
            update = {
                CURRENT_OCCUPANTS: approved_count,
                AVAILABLE_BEDS: available,
                IS_AVAILABLE: available > 0,
            }
        elif approved_count > 0:
            update = {IS_AVAILABLE: False, "status": PropertyStatus.RENTED.value}
        elif prop.get("status") == PropertyStatus.RENTED.value:
            update = {IS_AVAILABLE: True, "status": PropertyStatus.ACTIVE.value}
        else:
            return prop

        logger.info("🔧 Reconciling inventory of property %s: %s", property_id, update)
        return await self.ops.find_one_and_update(
            Collections.PROPERTIES,
            {"_id": prop["_id"]},
            {"$set": update},
            now=now,
        )
