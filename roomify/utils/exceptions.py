"""
Typed errors raised by the booking engine.

Callers branch on BookingError.kind; the HTTP layer maps each kind to a
status code in one place (see roomify.main).
"""
from enum import Enum
from typing import Optional


class BookingErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    NOT_AVAILABLE = "not_available"
    DUPLICATE_REQUEST = "duplicate_request"
    INVALID_BED = "invalid_bed"
    MISSING_REASON = "missing_reason"


HTTP_STATUS_BY_KIND = {
    BookingErrorKind.NOT_FOUND: 404,
    BookingErrorKind.INVALID_TRANSITION: 409,
    BookingErrorKind.NOT_AVAILABLE: 400,
    BookingErrorKind.DUPLICATE_REQUEST: 409,
    BookingErrorKind.INVALID_BED: 400,
    BookingErrorKind.MISSING_REASON: 400,
}


class BookingError(Exception):
    def __init__(self, kind: BookingErrorKind, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.current_status = current_status

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        body = {"detail": self.message, "kind": self.kind.value}
        if self.current_status is not None:
            body["current_status"] = self.current_status
        return body

    @classmethod
    def not_found(cls, what: str = "Booking") -> "BookingError":
        return cls(BookingErrorKind.NOT_FOUND, f"{what} not found")

    @classmethod
    def invalid_transition(cls, current_status: str) -> "BookingError":
        return cls(
            BookingErrorKind.INVALID_TRANSITION,
            f"Booking cannot be transitioned, currently in state {current_status}",
            current_status=current_status,
        )
