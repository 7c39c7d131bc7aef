"""Ground router - FastAPI endpoints for grounds and their slot grids"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_actor, require_admin
from ...database import get_db
from ...shared.actor import Actor
from ..bookings.router import get_booking_service
from ..bookings.schemas import AvailabilityResponse, SlotResponse
from ..bookings.service import BookingService
from .schemas import GroundCreate, GroundResponse, GroundUpdate, SlotTemplateResponse
from .service import GroundService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grounds", tags=["Grounds"])


def get_ground_service(db: Session = Depends(get_db)) -> GroundService:
    """Dependency injection for GroundService"""
    return GroundService(db)


@router.get("", response_model=list[GroundResponse])
def list_grounds(service: GroundService = Depends(get_ground_service)):
    """Active grounds open for booking"""
    return service.list_active_grounds()


@router.get("/all", response_model=list[GroundResponse])
def list_all_grounds(
    actor: Actor = Depends(require_admin),
    service: GroundService = Depends(get_ground_service),
):
    return service.list_all_grounds(actor)


@router.post("", response_model=GroundResponse, status_code=201)
def create_ground(
    data: GroundCreate,
    actor: Actor = Depends(require_admin),
    service: GroundService = Depends(get_ground_service),
):
    return service.create_ground(actor, data)


@router.get("/{ground_id}", response_model=GroundResponse)
def get_ground(ground_id: str, service: GroundService = Depends(get_ground_service)):
    return service.get_ground(ground_id)


@router.patch("/{ground_id}", response_model=GroundResponse)
def update_ground(
    ground_id: str,
    data: GroundUpdate,
    actor: Actor = Depends(require_admin),
    service: GroundService = Depends(get_ground_service),
):
    return service.update_ground(actor, ground_id, data)


@router.post("/{ground_id}/deactivate", response_model=GroundResponse)
def deactivate_ground(
    ground_id: str,
    actor: Actor = Depends(require_admin),
    service: GroundService = Depends(get_ground_service),
):
    return service.deactivate_ground(actor, ground_id)


@router.get("/{ground_id}/slots", response_model=list[SlotTemplateResponse])
def get_slot_template(ground_id: str, service: GroundService = Depends(get_ground_service)):
    """Empty slot grid and per-slot prices for the ground's category"""
    return [
        SlotTemplateResponse(start=s.start, end=s.end, price=s.price)
        for s in service.get_slot_template(ground_id)
    ]


@router.get("/{ground_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    ground_id: str,
    booking_date: date = Query(..., alias="date"),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Slot grid for one date, annotated for the caller"""
    ground, grid = service.get_availability(actor, ground_id, booking_date)
    return AvailabilityResponse(
        ground_id=ground.id,
        booking_date=booking_date,
        category=ground.category,
        slots=[
            SlotResponse(
                start=slot.start,
                end=slot.end,
                price=slot.price,
                state=slot.state.value,
                available=slot.is_available,
                booking_id=slot.booking_id,
            )
            for slot in grid
        ],
    )
