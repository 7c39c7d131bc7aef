"""Ground repository - Database operations for grounds"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Ground


class GroundRepository:
    """Repository for ground database operations"""

    @staticmethod
    def list_grounds(db: Session, include_inactive: bool = False) -> list[Ground]:
        query = db.query(Ground)
        if not include_inactive:
            query = query.filter(Ground.is_active.is_(True))
        return query.order_by(Ground.category.asc(), Ground.name.asc()).all()

    @staticmethod
    def get_ground(db: Session, ground_id: str) -> Optional[Ground]:
        return db.query(Ground).filter(Ground.id == ground_id).first()

    @staticmethod
    def add_ground(db: Session, **ground_data) -> Ground:
        """Stage a new ground; commit is left to the service"""
        ground = Ground(**ground_data)
        db.add(ground)
        db.flush()
        return ground

    @staticmethod
    def update_ground(db: Session, ground: Ground, **updates) -> Ground:
        for field, value in updates.items():
            setattr(ground, field, value)
        db.flush()
        return ground
