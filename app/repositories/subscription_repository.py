"""Subscription repository - read-only billing state"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.subscription import Subscription


class SubscriptionRepository:

    @staticmethod
    def latest_active(db: Session, owner_user_id: UUID) -> Optional[Subscription]:
        """Owner's most recent subscription with status active"""
        return db.query(Subscription).filter(
            Subscription.owner_user_id == owner_user_id,
            Subscription.status == "active"
        ).order_by(Subscription.created_at.desc()).first()
