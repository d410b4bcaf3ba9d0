"""Service repository - Database operations for bookable services"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.service import Service
from app.repositories.scope import ensure_scope


class ServiceRepository:
    """Repository for service database operations"""

    @staticmethod
    def get(db: Session, establishment_id: UUID, service_id: UUID) -> Optional[Service]:
        service = db.query(Service).filter(Service.id == service_id).first()
        return ensure_scope(service, establishment_id)
