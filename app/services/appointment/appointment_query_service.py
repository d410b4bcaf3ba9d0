# ============================================================================
# FILE 1: app/services/appointment/appointment_query_service.py
# Pure read logic - no FastAPI dependencies, fully testable
# ============================================================================
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, Dict, Any
from uuid import UUID

from app.models.appointment import Appointment
from app.repositories import AppointmentRepository


class AppointmentQueryService:
    """Read-side helpers for appointments."""

    @staticmethod
    def list_appointments(
            db: Session,
            establishment_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            professional_id: Optional[UUID] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters."""
        total, appointments = AppointmentRepository.list_for_establishment(
            db,
            establishment_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
            professional_id=professional_id,
            skip=skip,
            limit=limit,
        )

        return {
            "establishment_id": str(establishment_id),
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "status": status,
                "professional_id": str(professional_id) if professional_id else None,
            },
            "appointments": [AppointmentQueryService.serialize(appt) for appt in appointments]
        }

    @staticmethod
    def serialize(appointment: Appointment, detailed: bool = False) -> Dict[str, Any]:
        """Convert appointment to dictionary; detailed adds denormalized related rows"""
        data = {
            "id": str(appointment.id),
            "establishment_id": str(appointment.establishment_id),
            "professional_id": str(appointment.professional_id),
            "service_id": str(appointment.service_id),
            "customer_id": str(appointment.customer_id),
            "start_at": appointment.start_at.isoformat(),
            "end_at": appointment.end_at.isoformat(),
            "status": appointment.status,
        }

        if detailed:
            data.update({
                "customer_notes": appointment.customer_notes,
                "canceled_at": appointment.canceled_at.isoformat() if appointment.canceled_at else None,
                "completed_at": appointment.completed_at.isoformat() if appointment.completed_at else None,
                "completed_by": appointment.completed_by,
                "customer": appointment.customer.to_dict() if appointment.customer else None,
                "professional": appointment.professional.to_dict() if appointment.professional else None,
                "service": appointment.service.to_dict() if appointment.service else None,
                "establishment": appointment.establishment.to_dict() if appointment.establishment else None,
            })

        return data
