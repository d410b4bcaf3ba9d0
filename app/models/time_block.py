# app/models/time_block.py
from sqlalchemy import Column, String, Integer, Boolean, Time, DateTime, ForeignKey, Uuid
from app.models.base import Base
import uuid


class RecurringTimeBlock(Base):
    """Weekly-repeating closure (lunch break, weekly meeting...)"""
    __tablename__ = "recurring_time_blocks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True)  # None = everyone

    weekday = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    reason = Column(String, nullable=True)


class PunctualTimeBlock(Base):
    """One-off closure (holiday, personal appointment...)"""
    __tablename__ = "time_blocks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Uuid, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True)  # None = everyone

    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    reason = Column(String, nullable=True)
