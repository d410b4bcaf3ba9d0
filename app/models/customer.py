# app/models/customer.py
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("establishment_id", "phone", name="uq_customers_establishment_phone"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    establishment_id = Column(Uuid, ForeignKey("establishments.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)

    # Logged-in customer identity, when the booking was made with an account
    user_id = Column(Uuid, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
        }
