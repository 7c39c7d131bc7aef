"""
Admin audit trail
Entries are staged on the caller's session so they commit (or roll back)
together with the admin action they describe
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import AuditLog

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = frozenset(
    {
        "view_bookings",
        "confirm_booking",
        "reject_booking",
        "cancel_booking",
        "direct_booking",
        "reschedule_booking",
        "mark_paid",
        "purge_booking",
        "create_ground",
        "update_ground",
        "deactivate_ground",
    }
)


def log_admin_action(
    db: Session,
    admin_id: str,
    action: str,
    target_table: Optional[str] = None,
    target_id: Optional[str] = None,
    target_user_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> AuditLog:
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    entry = AuditLog(
        admin_id=admin_id,
        action=action,
        target_table=target_table,
        target_id=target_id,
        target_user_id=target_user_id,
        details=details,
    )
    db.add(entry)
    logger.debug(f"📝 Audit {action} by {admin_id} on {target_table}:{target_id}")
    return entry

