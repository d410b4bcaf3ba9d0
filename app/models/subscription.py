# app/models/subscription.py
"""
Plans and subscriptions - written by the billing collaborator, read here
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base
from app.utils.time_utils import local_now


class Plan(Base):
    __tablename__ = "plans"

    code = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    price_cents = Column(Integer, nullable=True)

    # None means unlimited
    max_professionals = Column(Integer, nullable=True)
    max_appointments_month = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Plan(code={self.code})>"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Uuid, nullable=False, index=True)
    plan_code = Column(String(50), ForeignKey("plans.code"), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active, past_due, canceled
    current_period_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=local_now)

    plan = relationship("Plan", lazy="joined")
