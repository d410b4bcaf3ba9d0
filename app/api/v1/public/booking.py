# ============================================================================
# FILE: app/api/v1/public/booking.py
# Public booking page and manage-token self service - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.api.dependencies import optional_current_user_id
from app.config.database import get_db
from app.core.exceptions import NotFound
from app.repositories import EstablishmentRepository, ServiceRepository
from app.schemas.booking import (
    CanAcceptResponse,
    CreateAppointmentRequest,
    CreateAppointmentResponse,
    ManageTokenRequest,
    RescheduleRequest,
    SlotsResponse,
)
from app.services.appointment.booking_orchestrator import BookingOrchestrator
from app.services.availability.availability_service import AvailabilityService
from app.services.entitlement.entitlement_service import EntitlementService

router = APIRouter(tags=["public-booking"])


@router.get("/establishments/{slug}/slots", response_model=SlotsResponse)
def list_slots(
        slug: str = Path(..., description="Establishment slug"),
        professional_id: UUID = Query(..., description="Professional to book with"),
        service_id: UUID = Query(..., description="Service to book"),
        day: date = Query(..., alias="date", description="Day to list, YYYY-MM-DD"),
        db: Session = Depends(get_db)
):
    """
    Start times still free for a service with a professional on one day.
    The list is advisory; booking re-checks the slot.
    """
    establishment = EstablishmentRepository.get_by_slug(db, slug)
    if not establishment:
        raise NotFound("Establishment not found")

    service = ServiceRepository.get(db, establishment.id, service_id)
    if not service or not service.active:
        raise NotFound("Service not found")

    slots = AvailabilityService.list_available_slots(
        db,
        establishment_id=establishment.id,
        professional_id=professional_id,
        service_duration_minutes=service.duration_minutes,
        day=day,
    )

    return {
        "establishment_slug": slug,
        "professional_id": professional_id,
        "service_id": service_id,
        "date": day.isoformat(),
        "slots": slots,
    }


@router.get("/establishments/{slug}/can-accept", response_model=CanAcceptResponse)
def can_accept_bookings(
        slug: str = Path(..., description="Establishment slug"),
        db: Session = Depends(get_db)
):
    """Whether the booking page should offer booking at all"""
    establishment = EstablishmentRepository.get_by_slug(db, slug)
    return EntitlementService.evaluate(db, establishment).to_dict()


@router.post("/establishments/{slug}/appointments", response_model=CreateAppointmentResponse, status_code=201)
def create_appointment(
        payload: CreateAppointmentRequest,
        slug: str = Path(..., description="Establishment slug"),
        customer_user_id: Optional[UUID] = Depends(optional_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Book a slot. The manage token in the response is shown once; keep it to
    reschedule or cancel later.
    """
    return BookingOrchestrator.create_appointment(
        db,
        slug=slug,
        service_id=payload.service_id,
        professional_id=payload.professional_id,
        start_at=payload.start_at,
        end_at=payload.end_at,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_email=payload.customer_email,
        notes=payload.notes,
        customer_user_id=customer_user_id,
    )


@router.get("/establishments/{slug}/appointments/manage")
def get_appointment_by_token(
        slug: str = Path(..., description="Establishment slug"),
        token: str = Query(..., min_length=1, description="Manage token received at booking"),
        db: Session = Depends(get_db)
):
    """Appointment detail for the manage page"""
    return BookingOrchestrator.get_by_token(db, slug, token)


@router.post("/appointments/{appointment_id}/reschedule")
def reschedule_appointment(
        payload: RescheduleRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    return BookingOrchestrator.reschedule(
        db,
        appointment_id=appointment_id,
        manage_token=payload.manage_token,
        new_start_at=payload.new_start_at,
        new_end_at=payload.new_end_at,
    )


@router.post("/appointments/{appointment_id}/cancel")
def cancel_appointment(
        payload: ManageTokenRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    """Cancel; repeating the call on a canceled appointment still succeeds"""
    return BookingOrchestrator.cancel(db, appointment_id=appointment_id, manage_token=payload.manage_token)


@router.post("/appointments/{appointment_id}/complete")
def complete_appointment(
        payload: ManageTokenRequest,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        db: Session = Depends(get_db)
):
    return BookingOrchestrator.complete_by_token(db, appointment_id=appointment_id, manage_token=payload.manage_token)
