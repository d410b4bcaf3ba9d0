# app/schemas/__init__.py
from .booking import (
    CreateAppointmentRequest,
    CreateAppointmentResponse,
    RescheduleRequest,
    ManageTokenRequest,
    SlotsResponse,
    CanAcceptResponse
)
