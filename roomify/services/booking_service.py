"""
Booking Service - the lifecycle engine behind every booking request.

Each transition is a single find_one_and_update whose filter pins the status
the booking was read in. When that write matches nothing, another request got
there first: the booking is re-read and the caller gets the idempotent
result (approve/reject retried on an already decided booking) or an
InvalidTransition error carrying the current status.

Writes happen in a fixed order: booking status, then the inventory ledger,
then the bulk rejection of conflicting siblings.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from roomify.config.database import Collections
from roomify.config.settings import settings
from roomify.database.db_operations import DBOperations, db_ops
from roomify.models.booking import (
    ACTIVE_STATUSES,
    CONFLICT_REJECTION_MESSAGE,
    TERMINAL_STATUSES,
    TIMELINE_FIELDS,
    BookingRecord,
    BookingRequest,
    BookingStatus,
    BookingType,
    RentDetails,
    can_transition,
)
from roomify.models.property import Property, PropertyType
from roomify.services.inventory_ledger import InventoryLedger
from roomify.services.notification_service import BookingEvent, BookingNotifier
from roomify.utils.exceptions import BookingError, BookingErrorKind
from roomify.utils.helpers import to_naive_utc, to_object_id, utc_now

logger = logging.getLogger(__name__)


class BookingService:

    def __init__(
        self,
        ops: Optional[DBOperations] = None,
        ledger: Optional[InventoryLedger] = None,
        notifier: Optional[BookingNotifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ops = ops or db_ops
        self.ledger = ledger or InventoryLedger(self.ops)
        self.notifier = notifier or BookingNotifier()
        self.clock = clock or utc_now

    # ─── Creation ────────────────────────────────────────────────────────────

    async def create_booking(self, request: BookingRequest) -> BookingRecord:
        """Validate a tenant's request against the property and open a PENDING booking"""
        now = self.clock()

        prop_doc = await self.ops.get_by_id(Collections.PROPERTIES, request.property_id)
        if prop_doc is None:
            raise BookingError.not_found("Property")
        prop = Property.from_document(prop_doc)

        if not prop.is_bookable:
            raise BookingError(BookingErrorKind.NOT_AVAILABLE, "Property is not available for booking")

        existing = await self.ops.get_one(Collections.BOOKINGS, {
            "property_id": prop.id,
            "tenant_id": request.tenant_id,
            "status": {"$in": ACTIVE_STATUSES},
        })
        if existing:
            raise BookingError(
                BookingErrorKind.DUPLICATE_REQUEST,
                "You already have an active booking request for this property",
            )

        if prop.property_type == PropertyType.SHARED_ROOM:
            booking_type = BookingType.SHARED_ROOM_BED
        else:
            booking_type = BookingType.FULL_PROPERTY

        bed_number = None
        if booking_type == BookingType.SHARED_ROOM_BED:
            if request.bed_number is None:
                raise BookingError(BookingErrorKind.INVALID_BED, "Bed number is required for shared room bookings")
            total_beds = prop.shared_room_details.total_beds if prop.shared_room_details else 0
            if not 1 <= request.bed_number <= total_beds:
                raise BookingError(BookingErrorKind.INVALID_BED, "Invalid bed number")
            bed_number = request.bed_number

        rent_details = RentDetails.for_duration(
            monthly_rent=prop.rent.amount,
            security_deposit=prop.rent.security_deposit,
            duration=request.proposed_duration,
            currency=prop.rent.currency,
        )

        document = {
            "property_id": prop.id,
            "tenant_id": request.tenant_id,
            "landlord_id": prop.owner_id,
            "booking_type": booking_type.value,
            "status": BookingStatus.PENDING.value,
            "is_active": True,
            "request_message": request.request_message,
            "response_message": None,
            "proposed_move_in_date": to_naive_utc(request.proposed_move_in_date),
            "proposed_duration": request.proposed_duration.model_dump(),
            "rent_details": rent_details.model_dump(),
            "bed_number": bed_number,
            "timeline": {"requested_at": now},
            "cancellation": None,
            "notes": [],
            "expires_at": now + timedelta(days=settings.BOOKING_EXPIRY_DAYS),
        }
        try:
            created = await self.ops.create(Collections.BOOKINGS, document, now=now)
        except DuplicateKeyError:
            # Lost a double-submit race to an identical request
            raise BookingError(
                BookingErrorKind.DUPLICATE_REQUEST,
                "You already have an active booking request for this property",
            )

        # Advisory counter only
        await self.ops.find_one_and_update(
            Collections.PROPERTIES,
            {"_id": prop_doc["_id"]},
            {"$inc": {"inquiries": 1}},
            now=now,
        )

        booking = BookingRecord.from_document(created)
        logger.info("📝 Booking request created: %s", booking.id)
        await self.notifier.notify(BookingEvent.REQUESTED, booking, booking.landlord_id)
        return booking

    # ─── Landlord decisions ──────────────────────────────────────────────────

    async def approve(
        self,
        booking_id: str,
        landlord_id: str,
        response_message: Optional[str] = None,
    ) -> BookingRecord:
        booking = await self._load(booking_id, {"landlord_id": landlord_id})
        if booking.status == BookingStatus.APPROVED:
            return booking
        self._guard(booking, BookingStatus.APPROVED)

        now = self.clock()
        approved = await self._transition(booking, BookingStatus.APPROVED, now, {
            "response_message": response_message,
            "timeline.responded_at": now,
        })
        if approved is None:
            return await self._resolve_lost_race(booking_id, BookingStatus.APPROVED)

        await self.ledger.reserve(approved.property_id, approved.booking_type, now=now)
        await self._reject_conflicting(approved, now)

        logger.info("✅ Booking approved: %s", approved.id)
        await self.notifier.notify(BookingEvent.APPROVED, approved, approved.tenant_id, response_message)
        return approved

    async def reject(self, booking_id: str, landlord_id: str, response_message: Optional[str]) -> BookingRecord:
        booking = await self._load(booking_id, {"landlord_id": landlord_id})
        if booking.status == BookingStatus.REJECTED:
            return booking
        self._guard(booking, BookingStatus.REJECTED)
        if not response_message or not response_message.strip():
            raise BookingError(BookingErrorKind.MISSING_REASON, "A reason is required to reject a booking")

        now = self.clock()
        rejected = await self._transition(booking, BookingStatus.REJECTED, now, {
            "response_message": response_message,
            "timeline.responded_at": now,
        })
        if rejected is None:
            return await self._resolve_lost_race(booking_id, BookingStatus.REJECTED)

        logger.info("🚫 Booking rejected: %s", rejected.id)
        await self.notifier.notify(BookingEvent.REJECTED, rejected, rejected.tenant_id, response_message)
        return rejected

    async def complete(self, booking_id: str, landlord_id: str) -> BookingRecord:
        booking = await self._load(booking_id, {"landlord_id": landlord_id})
        self._guard(booking, BookingStatus.COMPLETED)

        now = self.clock()
        completed = await self._transition(booking, BookingStatus.COMPLETED, now)
        if completed is None:
            return await self._resolve_lost_race(booking_id)

        await self.ledger.release(completed.property_id, completed.booking_type, now=now)

        logger.info("🏁 Booking completed: %s", completed.id)
        await self.notifier.notify(BookingEvent.COMPLETED, completed, completed.tenant_id)
        return completed

    # ─── Tenant or landlord ──────────────────────────────────────────────────

    async def cancel(self, booking_id: str, actor_id: str, reason: str) -> BookingRecord:
        booking = await self._load(booking_id, _party_filter(actor_id))
        self._guard(booking, BookingStatus.CANCELLED)
        was_approved = booking.status == BookingStatus.APPROVED

        now = self.clock()
        cancelled = await self._transition(booking, BookingStatus.CANCELLED, now, {
            "cancellation": {"cancelled_by": actor_id, "reason": reason, "cancelled_at": now},
        })
        if cancelled is None:
            return await self._resolve_lost_race(booking_id)

        if was_approved:
            await self.ledger.release(cancelled.property_id, cancelled.booking_type, now=now)

        logger.info("❎ Booking cancelled: %s", cancelled.id)
        other_party = cancelled.landlord_id if actor_id == cancelled.tenant_id else cancelled.tenant_id
        await self.notifier.notify(BookingEvent.CANCELLED, cancelled, other_party, reason)
        return cancelled

    async def add_note(self, booking_id: str, user_id: str, content: str) -> BookingRecord:
        booking = await self._load(booking_id, _party_filter(user_id))
        doc = await self.ops.find_one_and_update(
            Collections.BOOKINGS,
            {"_id": to_object_id(booking.id)},
            {"$push": {"notes": {"created_by": user_id, "content": content, "created_at": self.clock()}}},
        )
        if doc is None:
            raise BookingError.not_found()
        return BookingRecord.from_document(doc)

    # ─── System ──────────────────────────────────────────────────────────────

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Expire every PENDING booking whose deadline has passed.

        One bulk update; the status predicate makes it a no-op for bookings
        decided concurrently, so overlapping sweeps are harmless.
        """
        now = now or self.clock()
        modified = await self.ops.update_many(
            Collections.BOOKINGS,
            {"status": BookingStatus.PENDING.value, "expires_at": {"$lt": now}},
            {"$set": {
                "status": BookingStatus.EXPIRED.value,
                "is_active": False,
                "timeline.expired_at": now,
            }},
            now=now,
        )
        if modified:
            logger.info("⏰ Expired %d pending booking(s)", modified)
        return modified

    async def reconcile_inventory(self, property_id: str, landlord_id: Optional[str] = None) -> Dict:
        """Rebuild a property's ledger from its APPROVED bookings"""
        prop = await self.ops.get_by_id(Collections.PROPERTIES, property_id)
        if prop is None or (landlord_id is not None and prop.get("owner_id") != landlord_id):
            raise BookingError.not_found("Property")

        approved = await self.ops.count(Collections.BOOKINGS, {
            "property_id": str(prop["_id"]),
            "status": BookingStatus.APPROVED.value,
        })
        return await self.ledger.reconcile(str(prop["_id"]), approved, now=self.clock())

    # ─── Queries ─────────────────────────────────────────────────────────────

    async def get_booking(self, booking_id: str, user_id: str) -> BookingRecord:
        return await self._load(booking_id, _party_filter(user_id))

    async def list_tenant_bookings(
        self,
        tenant_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[BookingStatus] = None,
    ) -> Dict[str, Any]:
        return await self._paginate({"tenant_id": tenant_id}, page, limit, status)

    async def list_landlord_bookings(
        self,
        landlord_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[BookingStatus] = None,
    ) -> Dict[str, Any]:
        return await self._paginate({"landlord_id": landlord_id}, page, limit, status)

    async def get_statistics(self, user_id: str, role: Optional[str]) -> Dict[str, int]:
        """Booking counts per status for one tenant or landlord.

        Callers without a tenant or landlord role own no bookings and get
        all-zero counts.
        """
        result = {"total": 0}
        result.update({status.value: 0 for status in BookingStatus})
        if not user_id or role not in ("tenant", "landlord"):
            return result

        rows = await self.ops.aggregate(Collections.BOOKINGS, [
            {"$match": {f"{role}_id": user_id}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ])
        for row in rows:
            result[row["_id"]] = row["count"]
            result["total"] += row["count"]
        return result

    async def landlord_dashboard(self, landlord_id: str) -> Dict[str, Any]:
        total_properties = await self.ops.count(Collections.PROPERTIES, {"owner_id": landlord_id})
        pending_requests = await self.ops.count(Collections.BOOKINGS, {
            "landlord_id": landlord_id,
            "status": BookingStatus.PENDING.value,
        })
        confirmed_bookings = await self.ops.count(Collections.BOOKINGS, {
            "landlord_id": landlord_id,
            "status": BookingStatus.APPROVED.value,
        })
        revenue = await self.ops.aggregate(Collections.BOOKINGS, [
            {"$match": {
                "landlord_id": landlord_id,
                "status": {"$in": [BookingStatus.APPROVED.value, BookingStatus.COMPLETED.value]},
            }},
            {"$group": {"_id": None, "total_revenue": {"$sum": "$rent_details.total_amount"}}},
        ])

        return {
            "total_properties": total_properties,
            "pending_requests": pending_requests,
            "confirmed_bookings": confirmed_bookings,
            "total_revenue": revenue[0]["total_revenue"] if revenue else 0,
            "currency": settings.DEFAULT_CURRENCY,
        }

    # ─── Internals ───────────────────────────────────────────────────────────

    async def _load(self, booking_id: str, scope: Optional[Dict] = None) -> BookingRecord:
        object_id = to_object_id(booking_id)
        if object_id is None:
            raise BookingError.not_found()
        doc = await self.ops.get_one(Collections.BOOKINGS, {"_id": object_id, **(scope or {})})
        if doc is None:
            raise BookingError.not_found()
        return BookingRecord.from_document(doc)

    @staticmethod
    def _guard(booking: BookingRecord, target: BookingStatus) -> None:
        if not can_transition(booking.status, target):
            raise BookingError.invalid_transition(booking.status.value)

    async def _transition(
        self,
        booking: BookingRecord,
        target: BookingStatus,
        now: datetime,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[BookingRecord]:
        """Move booking to target, provided it is still in the status it was read in.

        Returns None when the conditional update matched nothing.
        """
        fields: Dict[str, Any] = {
            "status": target.value,
            f"timeline.{TIMELINE_FIELDS[target]}": now,
        }
        if target in TERMINAL_STATUSES:
            fields["is_active"] = False
        fields.update(extra or {})

        doc = await self.ops.find_one_and_update(
            Collections.BOOKINGS,
            {"_id": to_object_id(booking.id), "status": booking.status.value},
            {"$set": fields},
            now=now,
        )
        return BookingRecord.from_document(doc) if doc else None

    async def _resolve_lost_race(
        self,
        booking_id: str,
        idempotent_target: Optional[BookingStatus] = None,
    ) -> BookingRecord:
        current = await self._load(booking_id)
        if idempotent_target is not None and current.status == idempotent_target:
            return current
        raise BookingError.invalid_transition(current.status.value)

    async def _reject_conflicting(self, approved: BookingRecord, now: datetime) -> int:
        """Reject the PENDING siblings competing for the same unit of inventory"""
        query: Dict[str, Any] = {
            "_id": {"$ne": to_object_id(approved.id)},
            "property_id": approved.property_id,
            "status": BookingStatus.PENDING.value,
        }
        # Shared rooms only compete per bed
        if approved.booking_type == BookingType.SHARED_ROOM_BED:
            query["bed_number"] = approved.bed_number

        rejected = await self.ops.update_many(
            Collections.BOOKINGS,
            query,
            {"$set": {
                "status": BookingStatus.REJECTED.value,
                "is_active": False,
                "response_message": CONFLICT_REJECTION_MESSAGE,
                "timeline.responded_at": now,
                "timeline.rejected_at": now,
            }},
            now=now,
        )
        if rejected:
            logger.info("Auto-rejected %d conflicting booking(s) after approving %s", rejected, approved.id)
        return rejected

    async def _paginate(
        self,
        query: Dict[str, Any],
        page: int,
        limit: Optional[int],
        status: Optional[BookingStatus],
    ) -> Dict[str, Any]:
        limit = min(max(limit or settings.DEFAULT_PAGE_SIZE, 1), settings.MAX_PAGE_SIZE)
        page = max(page, 1)
        if status:
            query = {**query, "status": BookingStatus(status).value}

        docs = await self.ops.get_all(
            Collections.BOOKINGS,
            query,
            skip=(page - 1) * limit,
            limit=limit,
            sort=[("created_at", -1)],
        )
        total = await self.ops.count(Collections.BOOKINGS, query)
        bookings: List[BookingRecord] = [BookingRecord.from_document(doc) for doc in docs]
        return {
            "bookings": bookings,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        }


def _party_filter(user_id: str) -> Dict[str, Any]:
    return {"$or": [{"tenant_id": user_id}, {"landlord_id": user_id}]}


booking_service = BookingService()
