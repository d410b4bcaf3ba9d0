"""Establishment repository - Database operations for establishments"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, TenantAccessDenied
from app.models.establishment import Establishment, BusinessHours
from app.models.professional import Professional


class EstablishmentRepository:
    """Repository for establishment database operations"""

    @staticmethod
    def get_by_id(db: Session, establishment_id: UUID) -> Optional[Establishment]:
        return db.query(Establishment).filter(Establishment.id == establishment_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str, for_update: bool = False) -> Optional[Establishment]:
        """
        With for_update the establishment row stays locked until the
        transaction ends, so the monthly quota is counted by one booking at a time.
        """
        query = db.query(Establishment).filter(Establishment.slug == slug)
        if for_update:
            query = query.with_for_update(of=Establishment)
        return query.first()

    @staticmethod
    def get_business_hours(db: Session, establishment_id: UUID, weekday: int) -> Optional[BusinessHours]:
        """Hours row for one weekday (0=Sunday)"""
        return db.query(BusinessHours).filter(
            BusinessHours.establishment_id == establishment_id,
            BusinessHours.weekday == weekday
        ).first()

    @staticmethod
    def authorize_staff(db: Session, establishment_id: UUID, user_id: UUID) -> str:
        """
        Verify the caller may act on behalf of the establishment.

        Returns:
            "establishment" for the owner, "professional" for an active
            professional of the establishment.

        Raises:
            NotFound: establishment does not exist
            TenantAccessDenied: caller is neither owner nor professional
        """
        establishment = EstablishmentRepository.get_by_id(db, establishment_id)
        if not establishment:
            raise NotFound("Establishment not found")

        if establishment.owner_user_id == user_id:
            return "establishment"

        if EstablishmentRepository.professional_id_for_user(db, establishment_id, user_id):
            return "professional"

        raise TenantAccessDenied()

    @staticmethod
    def professional_id_for_user(db: Session, establishment_id: UUID, user_id: UUID) -> Optional[UUID]:
        """Id of the active professional the user logs in as, if any"""
        row = db.query(Professional.id).filter(
            Professional.establishment_id == establishment_id,
            Professional.user_id == user_id,
            Professional.active == True
        ).first()
        return row.id if row else None
