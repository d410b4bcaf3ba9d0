"""Typed, tenant-scoped data access per entity"""
from .scope import ensure_scope
from .establishment_repository import EstablishmentRepository
from .professional_repository import ProfessionalRepository
from .service_repository import ServiceRepository
from .time_block_repository import TimeBlockRepository
from .customer_repository import CustomerRepository
from .appointment_repository import AppointmentRepository
from .subscription_repository import SubscriptionRepository
from .event_repository import EventRepository

__all__ = [
    "ensure_scope",
    "EstablishmentRepository",
    "ProfessionalRepository",
    "ServiceRepository",
    "TimeBlockRepository",
    "CustomerRepository",
    "AppointmentRepository",
    "SubscriptionRepository",
    "EventRepository",
]
