# ===== app/services/availability/availability_service.py =====
from typing import List, Optional
from datetime import date, datetime
from uuid import UUID
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models.establishment import Establishment
from app.models.professional import Professional
from app.repositories import (
    AppointmentRepository,
    EstablishmentRepository,
    ProfessionalRepository,
    TimeBlockRepository,
)
from app.services.availability.calendar_resolver import open_intervals as resolve_open_intervals
from app.services.availability.slot_generator import available_starts, format_slots
from app.utils.time_utils import local_now, sunday_based_weekday
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Loads calendar rows and runs the calendar resolver and slot generator over them"""

    @staticmethod
    def open_intervals(
            db: Session,
            establishment_id: UUID,
            professional_id: Optional[UUID],
            day: date
    ) -> List[tuple]:
        """Open [start, end) minute intervals for a professional (or the whole establishment) on a day"""
        weekday = sunday_based_weekday(day)

        hours = EstablishmentRepository.get_business_hours(db, establishment_id, weekday)
        if hours is None:
            return []

        professional_hours = None
        if professional_id is not None:
            professional_hours = ProfessionalRepository.get_hours(db, establishment_id, professional_id, weekday)

        recurring = TimeBlockRepository.recurring_for(db, establishment_id, professional_id, weekday)
        punctual = TimeBlockRepository.punctual_for(db, establishment_id, professional_id, day)

        return resolve_open_intervals(
            hours,
            day,
            recurring_blocks=recurring,
            punctual_blocks=punctual,
            professional_id=professional_id,
            professional_hours=professional_hours,
        )

    @staticmethod
    def available_starts_for(
            db: Session,
            establishment: Establishment,
            professional: Professional,
            duration_minutes: int,
            day: date,
            slot_interval_minutes: Optional[int] = None,
            buffer_minutes: Optional[int] = None,
            now: Optional[datetime] = None,
            exclude_appointment_id: Optional[UUID] = None
    ) -> List[datetime]:
        """Bookable starts for an already-loaded establishment and professional"""
        if not professional.active:
            return []

        intervals = AvailabilityService.open_intervals(db, establishment.id, professional.id, day)
        if not intervals:
            return []

        existing = AppointmentRepository.active_for_professional_on(
            db, establishment.id, professional.id, day, exclude_appointment_id=exclude_appointment_id
        )

        return available_starts(
            intervals,
            duration_minutes=duration_minutes,
            interval_minutes=slot_interval_minutes or establishment.slot_interval_minutes,
            buffer_minutes=establishment.buffer_minutes if buffer_minutes is None else buffer_minutes,
            existing_appointments=existing,
            capacity=professional.capacity,
            now=now or local_now(),
            max_future_days=establishment.max_future_days,
            day=day,
        )

    @staticmethod
    def list_available_slots(
            db: Session,
            establishment_id: UUID,
            professional_id: UUID,
            service_duration_minutes: int,
            day: date,
            slot_interval_minutes: Optional[int] = None,
            buffer_minutes: Optional[int] = None,
            now: Optional[datetime] = None,
            exclude_appointment_id: Optional[UUID] = None
    ) -> List[str]:
        """
        Read-only slot listing for the booking page.

        Interval and buffer default to the establishment configuration.
        The result is best effort; commits re-validate.

        Returns:
            ["HH:MM", ...] ascending
        """
        establishment = EstablishmentRepository.get_by_id(db, establishment_id)
        if not establishment:
            raise NotFound("Establishment not found")

        professional = ProfessionalRepository.get(db, establishment_id, professional_id)
        if not professional:
            raise NotFound("Professional not found")

        starts = AvailabilityService.available_starts_for(
            db,
            establishment,
            professional,
            service_duration_minutes,
            day,
            slot_interval_minutes=slot_interval_minutes,
            buffer_minutes=buffer_minutes,
            now=now,
            exclude_appointment_id=exclude_appointment_id,
        )

        logger.debug(f"{len(starts)} slots for professional {professional_id} on {day.isoformat()}")
        return format_slots(starts)

    @staticmethod
    def is_slot_available(
            db: Session,
            establishment: Establishment,
            professional: Professional,
            duration_minutes: int,
            start_at: datetime,
            now: Optional[datetime] = None,
            exclude_appointment_id: Optional[UUID] = None
    ) -> bool:
        """Re-run the slot walk for start_at's day and check start_at is one of the results"""
        starts = AvailabilityService.available_starts_for(
            db,
            establishment,
            professional,
            duration_minutes,
            start_at.date(),
            now=now,
            exclude_appointment_id=exclude_appointment_id,
        )
        return start_at in starts
