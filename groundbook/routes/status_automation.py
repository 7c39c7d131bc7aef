"""
API endpoint for booking status automation and analytics
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..domain.bookings.lifecycle import BookingStatus
from ..domain.bookings.repository import BookingRepository
from ..services.notification_service import NotificationEmitter, get_emitter
from ..services.status_automation import run_booking_sweep
from ..shared.actor import Actor
from ..shared.clock import get_clock

router = APIRouter(prefix="/status", tags=["status"])


class StatusSummary(BaseModel):
    pending: int = 0
    confirmed: int = 0
    rejected: int = 0
    cancelled: int = 0
    completed: int = 0
    expired: int = 0


class AutomationResult(BaseModel):
    completed: int
    expired: int
    skipped: int
    failed: int
    total_updated: int


@router.get("/analytics", response_model=StatusSummary)
def get_status_analytics(
    actor: Actor = Depends(require_admin), db: Session = Depends(get_db)
):
    """Count of bookings by status; legacy 'active' rows count as confirmed"""
    summary = StatusSummary().model_dump()
    for status, count in BookingRepository.count_by_status(db).items():
        key = BookingStatus.CONFIRMED.value if status == BookingStatus.ACTIVE.value else status
        if key in summary:
            summary[key] += count
    return StatusSummary(**summary)


@router.post("/automation/run", response_model=AutomationResult)
def run_status_automation(
    actor: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_emitter),
    clock=Depends(get_clock),
):
    """
    Manually trigger the booking sweep
    (In production, this runs via the ARQ cron job)
    """
    return AutomationResult(**run_booking_sweep(db, clock(), emitter))
