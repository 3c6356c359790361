"""
Booking notifications - best-effort webhook dispatch.

A lifecycle transition is never rolled back because a notification failed;
errors are logged and swallowed here.
"""
import logging
from enum import Enum
from typing import Optional

import httpx

from roomify.config.settings import settings
from roomify.models.booking import BookingRecord

logger = logging.getLogger(__name__)


class BookingEvent(str, Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


SUBJECTS = {
    BookingEvent.REQUESTED: ("New Booking Request", "You have received a new booking request."),
    BookingEvent.APPROVED: ("Booking Approved!", "Great news! Your booking request has been approved."),
    BookingEvent.REJECTED: ("Booking Update", "Your booking request was not approved."),
    BookingEvent.CANCELLED: ("Booking Cancelled", "A booking you are part of has been cancelled."),
    BookingEvent.COMPLETED: ("Tenancy Completed", "Your tenancy has been marked as completed."),
}


class BookingNotifier:
    """Posts booking events to NOTIFICATION_WEBHOOK_URL when one is configured."""

    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[float] = None):
        self.webhook_url = settings.NOTIFICATION_WEBHOOK_URL if webhook_url is None else webhook_url
        self.timeout = timeout or settings.NOTIFICATION_TIMEOUT_SECONDS

    async def notify(
        self,
        event: BookingEvent,
        booking: BookingRecord,
        recipient_id: str,
        message: Optional[str] = None,
    ) -> bool:
        subject, text = SUBJECTS[event]
        if not self.webhook_url:
            logger.info("📨 %s for booking %s -> user %s (no webhook configured)", subject, booking.id, recipient_id)
            return False

        payload = {
            "event": event.value,
            "subject": subject,
            "text": text,
            "message": message,
            "recipient_id": recipient_id,
            "booking_id": booking.id,
            "property_id": booking.property_id,
            "status": booking.status.value,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.webhook_url, json=payload)
                resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("⚠️  Notification '%s' for booking %s failed: %s", event.value, booking.id, exc)
            return False
        return True
