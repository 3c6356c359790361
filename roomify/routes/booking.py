"""
Booking routes - tenant-facing API over the booking engine
"""
from fastapi import APIRouter, Depends, status, Query
from typing import Dict, Optional
from roomify.models.booking import (
    BookingCancel,
    BookingCreate,
    BookingRecord,
    BookingRequest,
    BookingStatus,
    NoteCreate,
)
from roomify.services.booking_service import BookingService, booking_service
from roomify.utils.auth import get_current_user
from roomify.utils.helpers import serialize_doc

router = APIRouter(prefix="/bookings", tags=["Bookings"])

def get_booking_service() -> BookingService:
    return booking_service

def serialize_booking(booking: BookingRecord) -> Dict:
    return serialize_doc(booking.model_dump(mode="python"))

def serialize_page(page: Dict) -> Dict:
    return {**page, "bookings": [serialize_booking(b) for b in page["bookings"]]}

@router.post("/request", status_code=status.HTTP_201_CREATED)
async def request_booking(
    booking: BookingCreate,
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Create a new booking request for the authenticated tenant"""
    request = BookingRequest(**booking.model_dump(), tenant_id=current_user["sub"])
    created = await service.create_booking(request)
    return serialize_booking(created)

@router.get("/my-bookings")
async def get_my_bookings(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get the current user's booking requests (as tenant)"""
    result = await service.list_tenant_bookings(current_user["sub"], page, limit, status_filter)
    return serialize_page(result)

@router.get("/stats")
async def get_my_statistics(
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Booking counts per status for the current user"""
    return await service.get_statistics(current_user["sub"], current_user.get("role"))

@router.get("/{booking_id}")
async def get_booking_details(
    booking_id: str,
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get booking details; only its tenant or landlord can see it"""
    booking = await service.get_booking(booking_id, current_user["sub"])
    return serialize_booking(booking)

@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    cancellation: BookingCancel,
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a pending or approved booking (tenant or landlord)"""
    booking = await service.cancel(booking_id, current_user["sub"], cancellation.reason)
    return serialize_booking(booking)

@router.post("/{booking_id}/notes", status_code=status.HTTP_201_CREATED)
async def add_booking_note(
    booking_id: str,
    note: NoteCreate,
    current_user: dict = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Append a note to the booking's conversation log"""
    booking = await service.add_note(booking_id, current_user["sub"], note.content)
    return serialize_booking(booking)
