"""Professional repository - Database operations for professionals"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.professional import Professional, ProfessionalHours
from app.repositories.scope import ensure_scope


class ProfessionalRepository:
    """Repository for professional database operations"""

    @staticmethod
    def get(
            db: Session,
            establishment_id: UUID,
            professional_id: UUID,
            for_update: bool = False
    ) -> Optional[Professional]:
        """
        Get a professional of the establishment.

        With for_update the row is locked until the transaction ends, which
        serializes bookings competing for the same professional.
        """
        query = db.query(Professional).filter(Professional.id == professional_id)
        if for_update:
            query = query.with_for_update()
        return ensure_scope(query.first(), establishment_id)

    @staticmethod
    def get_hours(db: Session, establishment_id: UUID, professional_id: UUID, weekday: int) -> Optional[ProfessionalHours]:
        """Professional-specific hours for a weekday, if configured"""
        return db.query(ProfessionalHours).join(
            Professional, Professional.id == ProfessionalHours.professional_id
        ).filter(
            Professional.establishment_id == establishment_id,
            ProfessionalHours.professional_id == professional_id,
            ProfessionalHours.weekday == weekday
        ).first()

    @staticmethod
    def count(db: Session, establishment_id: UUID) -> int:
        return db.query(Professional).filter(Professional.establishment_id == establishment_id).count()
