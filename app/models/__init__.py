# app/models/__init__.py
from .base import Base
from .establishment import Establishment, EstablishmentStatus, BusinessHours
from .professional import Professional, ProfessionalHours
from .service import Service
from .customer import Customer
from .time_block import RecurringTimeBlock, PunctualTimeBlock
from .appointment import Appointment, AppointmentStatus
from .appointment_event import AppointmentEvent, AppointmentEventType
from .subscription import Plan, Subscription

__all__ = [
    "Base",
    "Establishment",
    "EstablishmentStatus",
    "BusinessHours",
    "Professional",
    "ProfessionalHours",
    "Service",
    "Customer",
    "RecurringTimeBlock",
    "PunctualTimeBlock",
    "Appointment",
    "AppointmentStatus",
    "AppointmentEvent",
    "AppointmentEventType",
    "Plan",
    "Subscription",
]
