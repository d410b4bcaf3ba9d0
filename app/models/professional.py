# app/models/professional.py
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Time, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Professional(Base):
    """A person (or chair, room...) that serves customers"""
    __tablename__ = "professionals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    establishment_id = Column(
        Uuid,
        ForeignKey("establishments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(200), nullable=False)

    # Login identity for the professional portal, if any
    user_id = Column(Uuid, nullable=True, index=True)

    # How many customers can be served at the same time
    capacity = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Professional(id={self.id}, name={self.name}, capacity={self.capacity})>"

    def to_dict(self):
        return {"id": str(self.id), "name": self.name}


class ProfessionalHours(Base):
    """Per-professional weekly hours, narrowing the establishment hours"""
    __tablename__ = "professional_hours"
    __table_args__ = (
        UniqueConstraint("professional_id", "weekday", name="uq_professional_hours_weekday"),
    )

    id = Column(Integer, primary_key=True)
    professional_id = Column(Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    closed = Column(Boolean, nullable=False, default=False)
