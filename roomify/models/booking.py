"""
Booking record, its lifecycle states and the rent arithmetic.

A booking only moves along the edges of ALLOWED_TRANSITIONS; the record
itself is frozen and is re-read from the store after every transition.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"


class BookingType(str, Enum):
    FULL_PROPERTY = "full_property"
    SHARED_ROOM_BED = "shared_room_bed"


ACTIVE_STATUSES = [BookingStatus.PENDING.value, BookingStatus.APPROVED.value]

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
    BookingStatus.EXPIRED,
})

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.APPROVED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    }),
    BookingStatus.APPROVED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
    }),
}

# Timeline stamp written by each transition
TIMELINE_FIELDS: Dict[BookingStatus, str] = {
    BookingStatus.APPROVED: "approved_at",
    BookingStatus.REJECTED: "rejected_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.EXPIRED: "expired_at",
}

CONFLICT_REJECTION_MESSAGE = "This property/bed has been booked by another tenant"


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(BookingStatus(current), frozenset())


class ProposedDuration(BaseModel):
    value: int = Field(..., ge=1)
    unit: Literal["months", "years"] = "months"

    model_config = {"frozen": True}

    @property
    def in_months(self) -> int:
        return self.value * 12 if self.unit == "years" else self.value


def compute_total(monthly_rent: float, security_deposit: float, duration: ProposedDuration) -> float:
    """Total payable for the whole stay: rent for every month plus the deposit."""
    return monthly_rent * duration.in_months + security_deposit


class RentDetails(BaseModel):
    monthly_rent: float = Field(..., ge=0)
    security_deposit: float = Field(0, ge=0)
    total_amount: float
    currency: str = "PKR"

    model_config = {"frozen": True}

    @classmethod
    def for_duration(
        cls,
        monthly_rent: float,
        security_deposit: float,
        duration: ProposedDuration,
        currency: str,
    ) -> "RentDetails":
        return cls(
            monthly_rent=monthly_rent,
            security_deposit=security_deposit,
            total_amount=compute_total(monthly_rent, security_deposit, duration),
            currency=currency,
        )


class Timeline(BaseModel):
    requested_at: datetime
    responded_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None

    model_config = {"frozen": True}


class Cancellation(BaseModel):
    cancelled_by: str
    reason: str = ""
    cancelled_at: datetime

    model_config = {"frozen": True}


class BookingNote(BaseModel):
    created_by: str
    content: str
    created_at: datetime

    model_config = {"frozen": True}


class BookingRecord(BaseModel):
    """Persisted booking as read back from the bookings collection"""
    id: str = Field(alias="_id")
    property_id: str
    tenant_id: str
    landlord_id: str
    booking_type: BookingType
    status: BookingStatus
    request_message: str
    response_message: Optional[str] = None
    proposed_move_in_date: datetime
    proposed_duration: ProposedDuration
    rent_details: RentDetails
    bed_number: Optional[int] = None
    timeline: Timeline
    cancellation: Optional[Cancellation] = None
    notes: List[BookingNote] = Field(default_factory=list)
    expires_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookingRecord":
        return cls.model_validate({**doc, "_id": str(doc["_id"])})


# ── Request payloads ─────────────────────────────────────────────────────────

class BookingCreate(BaseModel):
    property_id: str
    request_message: str = Field(..., min_length=1, max_length=1000)
    proposed_move_in_date: datetime
    proposed_duration: ProposedDuration
    bed_number: Optional[int] = None


class BookingRequest(BookingCreate):
    """BookingCreate plus the already-authenticated tenant"""
    tenant_id: str


class BookingDecision(BaseModel):
    response_message: Optional[str] = Field(None, max_length=1000)


class BookingCancel(BaseModel):
    reason: str = Field("", max_length=1000)


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
