"""Booking router - FastAPI endpoints for requesters and admins"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_actor, require_admin
from ...database import get_db
from ...rate_limiter import booking_rate_limiter
from ...services.notification_service import NotificationEmitter, get_emitter
from ...shared.actor import Actor
from ...shared.clock import get_clock
from .schemas import (
    ActionResponse,
    AdminBookingCreate,
    BookingActionRequest,
    BookingCreate,
    BookingReschedule,
    BookingResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
admin_router = APIRouter(prefix="/admin/bookings", tags=["Admin Bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_emitter),
    clock=Depends(get_clock),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, emitter=emitter, clock=clock)


def _intervals(slots) -> list:
    return [(s.start, s.end) for s in slots]


# ============================================================================
# REQUESTER ENDPOINTS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(booking_rate_limiter),
):
    """Request a booking for one or more consecutive slots"""
    return service.create_booking(actor, data.ground_id, data.booking_date, _intervals(data.slots))


@router.get("/mine", response_model=list[BookingResponse])
def list_my_bookings(
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_my_bookings(actor)


@router.post("/actions", response_model=ActionResponse)
def booking_action(
    data: BookingActionRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Confirm, reject or cancel a booking in one call"""
    booking = service.apply_action(actor, data.booking_id, data.action)
    return ActionResponse(message=f"Booking {booking.status}", booking=booking)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(actor, booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_booking(actor, booking_id)


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
def reschedule_booking(
    booking_id: str,
    data: BookingReschedule,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return service.reschedule_booking(actor, booking_id, data.booking_date, _intervals(data.slots))


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


@admin_router.get("", response_model=list[BookingResponse])
def list_bookings(
    booking_date: Optional[date] = Query(None),
    ground_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """All bookings, filtered by date, ground, status or user"""
    return service.list_bookings(actor, booking_date, ground_id, status, user_id)


@admin_router.post("", response_model=BookingResponse, status_code=201)
def direct_booking(
    data: AdminBookingCreate,
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Walk-in / offline booking, confirmed immediately"""
    return service.admin_direct_book(
        actor, data.ground_id, data.booking_date, _intervals(data.slots), user_id=data.user_id
    )


@admin_router.post("/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: str,
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.confirm_booking(actor, booking_id)


@admin_router.post("/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: str,
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.reject_booking(actor, booking_id)


@admin_router.post("/{booking_id}/mark-paid", response_model=BookingResponse)
def mark_booking_paid(
    booking_id: str,
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.mark_paid(actor, booking_id)


@admin_router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def purge_booking(
    booking_id: str,
    actor: Actor = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Permanently delete a booking and release its slot"""
    service.purge_booking(actor, booking_id)
