"""
Landlord routes - decisions on incoming booking requests and dashboard figures
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional
from roomify.models.booking import BookingDecision, BookingStatus
from roomify.routes.booking import get_booking_service, serialize_booking, serialize_page
from roomify.services.booking_service import BookingService
from roomify.utils.auth import get_current_landlord
from roomify.utils.helpers import serialize_doc

router = APIRouter(prefix="/landlord", tags=["Landlord"])

@router.get("/bookings")
async def get_landlord_bookings(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Booking requests received on the landlord's properties"""
    result = await service.list_landlord_bookings(landlord["sub"], page, limit, status_filter)
    return serialize_page(result)

@router.get("/stats")
async def get_landlord_stats(
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Dashboard figures: properties, pending requests, confirmed bookings, revenue"""
    return await service.landlord_dashboard(landlord["sub"])

@router.post("/bookings/{booking_id}/approve")
async def approve_booking(
    booking_id: str,
    decision: Optional[BookingDecision] = None,
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Approve a pending request; retrying on an approved booking is a no-op"""
    message = decision.response_message if decision else None
    booking = await service.approve(booking_id, landlord["sub"], message)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/reject")
async def reject_booking(
    booking_id: str,
    decision: BookingDecision,
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Reject a pending request with a reason"""
    booking = await service.reject(booking_id, landlord["sub"], decision.response_message)
    return serialize_booking(booking)

@router.post("/bookings/{booking_id}/complete")
async def complete_booking(
    booking_id: str,
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Mark an approved tenancy as ended and free its inventory"""
    booking = await service.complete(booking_id, landlord["sub"])
    return serialize_booking(booking)

@router.post("/properties/{property_id}/reconcile")
async def reconcile_property_inventory(
    property_id: str,
    landlord: dict = Depends(get_current_landlord),
    service: BookingService = Depends(get_booking_service),
):
    """Recompute availability and bed counters from the approved bookings"""
    prop = await service.reconcile_inventory(property_id, landlord["sub"])
    return serialize_doc(prop)
