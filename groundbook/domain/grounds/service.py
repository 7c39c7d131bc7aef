"""Ground service - Business logic for ground management"""

import logging

from sqlalchemy.orm import Session

from ...models import Ground
from ...services.audit_log import log_admin_action
from ...shared.actor import Actor
from ..errors import NotFound, PermissionDenied
from ..scheduling.slots import Slot, generate_slots
from .repository import GroundRepository
from .schemas import GroundCreate, GroundUpdate

logger = logging.getLogger(__name__)


class GroundService:
    """Service layer for grounds; grounds are deactivated, never deleted"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = GroundRepository()

    def list_active_grounds(self) -> list[Ground]:
        return self.repo.list_grounds(self.db)

    def list_all_grounds(self, actor: Actor) -> list[Ground]:
        self._require_admin(actor)
        return self.repo.list_grounds(self.db, include_inactive=True)

    def get_ground(self, ground_id: str) -> Ground:
        ground = self.repo.get_ground(self.db, ground_id)
        if not ground:
            raise NotFound("Ground not found")
        return ground

    def get_slot_template(self, ground_id: str) -> list[Slot]:
        """The ground's empty slot grid with prices"""
        return generate_slots(self.get_ground(ground_id).category)

    def create_ground(self, actor: Actor, data: GroundCreate) -> Ground:
        self._require_admin(actor)
        try:
            ground = self.repo.add_ground(
                self.db,
                name=data.name,
                category=data.category.value,
                location=data.location,
                description=data.description,
                image_url=data.image_url,
                price_per_hour=data.price_per_hour,
                is_active=True,
            )
            self._audit(actor, "create_ground", ground, {"name": ground.name})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🏟️ Ground {ground.id} ({data.category.value}) created by {actor.id}")
        return ground

    def update_ground(self, actor: Actor, ground_id: str, data: GroundUpdate) -> Ground:
        self._require_admin(actor)
        ground = self.get_ground(ground_id)
        updates = data.model_dump(exclude_unset=True)
        if not updates:
            return ground

        action = "deactivate_ground" if updates.get("is_active") is False else "update_ground"
        try:
            self.repo.update_ground(self.db, ground, **updates)
            self._audit(actor, action, ground, {k: str(v) for k, v in updates.items()})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"✏️ Ground {ground.id} updated by {actor.id}: {list(updates)}")
        return ground

    def deactivate_ground(self, actor: Actor, ground_id: str) -> Ground:
        """Stop new bookings; existing bookings keep their slots"""
        return self.update_ground(actor, ground_id, GroundUpdate(is_active=False))

    def _audit(self, actor: Actor, action: str, ground: Ground, details: dict) -> None:
        log_admin_action(
            self.db,
            admin_id=actor.id,
            action=action,
            target_table="grounds",
            target_id=ground.id,
            details=details,
        )

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            logger.warning(f"⚠️ Non-admin {actor.id} attempted to manage grounds")
            raise PermissionDenied("Only admins can manage grounds")
