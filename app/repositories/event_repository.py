"""Outbox repository - appointment side-effect events"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.appointment import Appointment
from app.models.appointment_event import AppointmentEvent


class EventRepository:

    @staticmethod
    def record(db: Session, appointment: Appointment, event_type: str, payload: Dict[str, Any]) -> AppointmentEvent:
        """Stage an event in the caller's transaction"""
        event = AppointmentEvent(
            appointment_id=appointment.id,
            establishment_id=appointment.establishment_id,
            event_type=event_type,
            payload=payload,
            status="pending",
            attempts=0,
        )
        db.add(event)
        return event

    @staticmethod
    def get(db: Session, event_id: UUID) -> Optional[AppointmentEvent]:
        return db.query(AppointmentEvent).filter(AppointmentEvent.id == event_id).first()

    @staticmethod
    def pending(
            db: Session,
            max_attempts: int,
            created_before: Optional[datetime] = None,
            limit: int = 100
    ) -> List[AppointmentEvent]:
        """Undelivered events that still have attempts left, oldest first"""
        query = db.query(AppointmentEvent).filter(
            AppointmentEvent.status == "pending",
            AppointmentEvent.attempts < max_attempts
        )
        if created_before is not None:
            query = query.filter(AppointmentEvent.created_at < created_before)
        return query.order_by(AppointmentEvent.created_at.asc()).limit(limit).all()
