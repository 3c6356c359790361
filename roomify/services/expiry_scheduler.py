"""
Booking Expiry Scheduler
Runs as a background asyncio task on app startup.
Every EXPIRY_SWEEP_INTERVAL_SECONDS it moves PENDING bookings whose
expires_at has passed to 'expired' in one bulk update.
"""
import asyncio
import logging
from typing import Optional

from roomify.config.settings import settings
from roomify.services.booking_service import BookingService, booking_service

logger = logging.getLogger(__name__)


async def expire_overdue_bookings(service: Optional[BookingService] = None) -> int:
    """
    Run one sweep. Failures are logged and reported as zero so the
    scheduler loop keeps going.
    """
    service = service or booking_service
    try:
        return await service.sweep_expired()
    except Exception as exc:
        logger.error("❌ Error expiring bookings: %s", exc)
        return 0


async def run_expiry_scheduler(
    interval_seconds: Optional[int] = None,
    service: Optional[BookingService] = None,
) -> None:
    """
    Infinite loop that calls expire_overdue_bookings() every `interval_seconds`.
    Designed to be launched as an asyncio background task from the app lifespan.
    """
    interval_seconds = interval_seconds or settings.EXPIRY_SWEEP_INTERVAL_SECONDS
    logger.info("🕐 Booking Expiry Scheduler started (interval: %ss)", interval_seconds)
    # Run once immediately on startup to catch any already-expired bookings
    await expire_overdue_bookings(service)
    while True:
        await asyncio.sleep(interval_seconds)
        await expire_overdue_bookings(service)
