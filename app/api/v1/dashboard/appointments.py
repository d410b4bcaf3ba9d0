# ============================================================================
# FILE: app/api/v1/dashboard/appointments.py
# JWT authenticated endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from app.api.dependencies import get_current_user_id
from app.config.database import get_db
from app.models.appointment import AppointmentStatus
from app.repositories import EstablishmentRepository
from app.services.appointment.appointment_query_service import AppointmentQueryService
from app.services.appointment.booking_orchestrator import BookingOrchestrator

router = APIRouter(prefix="/establishments/{establishment_id}/appointments", tags=["dashboard-appointments"])


@router.get("")
def list_appointments(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        start_date: Optional[date] = Query(None, description="Filter appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Filter appointments on or before this date"),
        status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
        professional_id: Optional[UUID] = Query(None, description="Filter by professional"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Appointments of the establishment. Professionals only see their own.
    """
    role = EstablishmentRepository.authorize_staff(db, establishment_id, user_id)
    if role == "professional":
        professional_id = EstablishmentRepository.professional_id_for_user(db, establishment_id, user_id)

    return AppointmentQueryService.list_appointments(
        db=db,
        establishment_id=establishment_id,
        start_date=start_date,
        end_date=end_date,
        status=status.value if status else None,
        professional_id=professional_id,
        skip=skip,
        limit=limit
    )


@router.post("/{appointment_id}/confirm")
def confirm_appointment(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    return BookingOrchestrator.confirm(db, establishment_id, appointment_id, user_id)


@router.post("/{appointment_id}/complete")
def complete_appointment(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    return BookingOrchestrator.complete(db, establishment_id, appointment_id, user_id)


@router.post("/{appointment_id}/no-show")
def mark_no_show(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        appointment_id: UUID = Path(..., description="The appointment ID"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    return BookingOrchestrator.mark_no_show(db, establishment_id, appointment_id, user_id)
