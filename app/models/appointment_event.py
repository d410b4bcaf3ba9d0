# app/models/appointment_event.py
"""
Outbox of appointment side effects.

Rows are written in the same transaction as the appointment change and
delivered afterwards by the Celery worker.
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON, Uuid
import uuid

from app.models.base import Base
from app.utils.time_utils import local_now


class AppointmentEventType:
    CREATED = "appointment.created"
    RESCHEDULED = "appointment.rescheduled"
    CANCELED = "appointment.canceled"
    COMPLETED = "appointment.completed"


class AppointmentEvent(Base):
    __tablename__ = "appointment_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    appointment_id = Column(Uuid, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False)

    event_type = Column(String(50), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)

    # Delivery tracking
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, delivered, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=local_now)
    delivered_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<AppointmentEvent(id={self.id}, type={self.event_type}, status={self.status})>"
