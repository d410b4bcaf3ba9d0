# app/models/service.py
"""
Service Model - what a customer can book
Each service belongs to one establishment; its duration drives end_at.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Boolean, DateTime, Uuid
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    establishment_id = Column(
        Uuid,
        ForeignKey("establishments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=True)

    active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, establishment_id={self.establishment_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "price_cents": self.price_cents,
        }
