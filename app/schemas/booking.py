"""
Pydantic schemas for public booking and self-service requests
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class CreateAppointmentRequest(BaseModel):
    """
    Booking submitted from the public booking page.
    end_at is optional; when sent it must equal start_at + service duration.
    """
    service_id: UUID
    professional_id: UUID
    start_at: datetime
    end_at: Optional[datetime] = None
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_phone: str = Field(..., min_length=1, max_length=30)
    customer_email: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('customer_name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('customer_name cannot be blank')
        return v

    @field_validator('customer_email')
    @classmethod
    def blank_email_is_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()


class RescheduleRequest(BaseModel):
    """Move an appointment; authorized by its manage token"""
    manage_token: str = Field(..., min_length=1)
    new_start_at: datetime
    new_end_at: Optional[datetime] = None


class ManageTokenRequest(BaseModel):
    """Body for cancel and complete"""
    manage_token: str = Field(..., min_length=1)


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class CreateAppointmentResponse(BaseModel):
    appointment_id: UUID
    manage_token: str


class SlotsResponse(BaseModel):
    establishment_slug: str
    professional_id: UUID
    service_id: UUID
    date: str
    slots: List[str]


class CanAcceptResponse(BaseModel):
    can_accept: bool
    reason: Optional[str] = None
    error_code: Optional[str] = None
