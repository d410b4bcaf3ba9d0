# app/models/establishment.py
"""
Establishment Model - the tenant that owns a public booking page
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Time, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid
from app.models.base import Base


class EstablishmentStatus(str, enum.Enum):
    """Billing state, written by the billing collaborator."""
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class Establishment(Base):
    __tablename__ = "establishments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    owner_user_id = Column(Uuid, nullable=False, index=True)

    # Billing state
    status = Column(String(20), nullable=False, default=EstablishmentStatus.TRIAL.value)
    trial_ends_at = Column(DateTime, nullable=True)

    # Booking configuration
    booking_enabled = Column(Boolean, nullable=False, default=True)
    reschedule_min_hours = Column(Integer, nullable=False, default=2)
    max_future_days = Column(Integer, nullable=False, default=60)
    slot_interval_minutes = Column(Integer, nullable=False, default=15)
    buffer_minutes = Column(Integer, nullable=False, default=0)

    # Contact information shown on the manage page
    phone = Column(String(20), nullable=True)
    address = Column(String(300), nullable=True)
    cancellation_policy_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    business_hours = relationship("BusinessHours", back_populates="establishment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Establishment(id={self.id}, slug={self.slug}, status={self.status})>"

    def to_dict(self):
        """Public fields denormalized into appointment details"""
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "phone": self.phone,
            "address": self.address,
            "reschedule_min_hours": self.reschedule_min_hours,
            "cancellation_policy_text": self.cancellation_policy_text,
        }


class BusinessHours(Base):
    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("establishment_id", "weekday", name="uq_business_hours_weekday"),
    )

    id = Column(Integer, primary_key=True)
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    closed = Column(Boolean, nullable=False, default=False)

    establishment = relationship("Establishment", back_populates="business_hours")

    def __repr__(self):
        return f"<BusinessHours(establishment_id={self.establishment_id}, weekday={self.weekday})>"
