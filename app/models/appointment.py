# ===== app/models/appointment.py =====
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import relationship
import enum
import uuid

from app.models.base import Base
from app.utils.time_utils import local_now


class AppointmentStatus(str, enum.Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"
    NO_SHOW = "no_show"


ACTIVE_STATUSES = (AppointmentStatus.BOOKED.value, AppointmentStatus.CONFIRMED.value)
TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.CANCELED.value,
    AppointmentStatus.NO_SHOW.value,
)

_ACTIVE_PREDICATE = text("status IN ('booked', 'confirmed')")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One row per (professional, start, seat) among live bookings.
        # seat is always 0 when capacity is 1.
        Index(
            "uq_appointments_active_seat",
            "professional_id", "start_at", "seat",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index("ix_appointments_professional_start", "professional_id", "start_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Uuid, ForeignKey("professionals.id"), nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False)

    # Appointment details
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    seat = Column(Integer, nullable=False, default=0)
    customer_notes = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=AppointmentStatus.BOOKED.value)

    # SHA-256 of the manage token; the token itself is only returned once
    manage_token_hash = Column(String(64), nullable=False, unique=True, index=True)

    created_at = Column(DateTime, nullable=False, default=local_now)
    updated_at = Column(DateTime, nullable=True, default=local_now)
    canceled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by = Column(String(20), nullable=True)  # customer, establishment, professional

    establishment = relationship("Establishment", lazy="joined")
    professional = relationship("Professional", lazy="joined")
    service = relationship("Service", lazy="joined")
    customer = relationship("Customer", lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self):
        return f"<Appointment(id={self.id}, start_at={self.start_at}, status={self.status})>"
