"""Appointment repository - Database operations for appointments"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.appointment import Appointment, ACTIVE_STATUSES, AppointmentStatus
from app.models.customer import Customer
from app.repositories.scope import ensure_scope
from app.utils.time_utils import month_bounds


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get(
            db: Session,
            establishment_id: UUID,
            appointment_id: UUID,
            for_update: bool = False
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update(of=Appointment)
        return ensure_scope(query.first(), establishment_id)

    @staticmethod
    def get_for_token_check(db: Session, appointment_id: UUID, for_update: bool = False) -> Optional[Appointment]:
        """
        Load an appointment by id for manage-token verification.

        The token is the credential here, so the caller must compare it before
        exposing or mutating anything.
        """
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update(of=Appointment)
        return query.first()

    @staticmethod
    def get_by_token_hash(db: Session, establishment_id: UUID, token_hash: str) -> Optional[Appointment]:
        appointment = db.query(Appointment).filter(
            Appointment.manage_token_hash == token_hash,
            Appointment.establishment_id == establishment_id
        ).first()
        return ensure_scope(appointment, establishment_id)

    @staticmethod
    def active_for_professional_on(
            db: Session,
            establishment_id: UUID,
            professional_id: UUID,
            day: date,
            exclude_appointment_id: Optional[UUID] = None
    ) -> List[Appointment]:
        """Booked/confirmed appointments of a professional touching the day"""
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)

        query = db.query(Appointment).filter(
            Appointment.establishment_id == establishment_id,
            Appointment.professional_id == professional_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at < day_end,
            Appointment.end_at > day_start
        )
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)

        return query.order_by(Appointment.start_at.asc()).all()

    @staticmethod
    def used_seats(
            db: Session,
            professional_id: UUID,
            start_at: datetime,
            exclude_appointment_id: Optional[UUID] = None
    ) -> Set[int]:
        """Seats taken by live appointments starting exactly at start_at"""
        query = db.query(Appointment.seat).filter(
            Appointment.professional_id == professional_id,
            Appointment.start_at == start_at,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return {row.seat for row in query.all()}

    @staticmethod
    def find_active_duplicate(
            db: Session,
            establishment_id: UUID,
            professional_id: UUID,
            start_at: datetime,
            customer_phone: str
    ) -> Optional[Appointment]:
        """A live booking by the same customer phone at the same professional and time"""
        return db.query(Appointment).join(
            Customer, Customer.id == Appointment.customer_id
        ).filter(
            Appointment.establishment_id == establishment_id,
            Appointment.professional_id == professional_id,
            Appointment.start_at == start_at,
            Appointment.status.in_(ACTIVE_STATUSES),
            Customer.phone == customer_phone
        ).first()

    @staticmethod
    def count_created_in_month(db: Session, establishment_id: UUID, moment: datetime) -> int:
        """Non-canceled appointments created in moment's calendar month"""
        month_start, next_month = month_bounds(moment)
        return db.query(Appointment).filter(
            Appointment.establishment_id == establishment_id,
            Appointment.status != AppointmentStatus.CANCELED.value,
            Appointment.created_at >= month_start,
            Appointment.created_at < next_month
        ).count()

    @staticmethod
    def list_for_establishment(
            db: Session,
            establishment_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            professional_id: Optional[UUID] = None,
            skip: int = 0,
            limit: int = 50
    ) -> tuple:
        """Returns (total, page of appointments) ordered by start"""
        query = db.query(Appointment).filter(Appointment.establishment_id == establishment_id)

        if start_date:
            query = query.filter(Appointment.start_at >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(Appointment.start_at < datetime.combine(end_date + timedelta(days=1), time.min))
        if status:
            query = query.filter(Appointment.status == status)
        if professional_id:
            query = query.filter(Appointment.professional_id == professional_id)

        total = query.count()
        appointments = query.order_by(Appointment.start_at.asc()).offset(skip).limit(limit).all()
        return total, appointments
