# ============================================================================
# FILE: app/api/v1/dashboard/establishments.py
# Plan usage for the subscription screen
# ============================================================================
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.dependencies import get_current_user_id
from app.config.database import get_db
from app.repositories import EstablishmentRepository
from app.services.entitlement.entitlement_service import EntitlementService

router = APIRouter(prefix="/establishments", tags=["dashboard-establishments"])


@router.get("/{establishment_id}/usage")
def get_usage(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """Plan limits against this month's usage"""
    EstablishmentRepository.authorize_staff(db, establishment_id, user_id)
    establishment = EstablishmentRepository.get_by_id(db, establishment_id)
    return EntitlementService.get_subscription_usage(db, establishment)


@router.get("/{establishment_id}/can-add-professional")
def can_add_professional(
        establishment_id: UUID = Path(..., description="The establishment ID"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    EstablishmentRepository.authorize_staff(db, establishment_id, user_id)
    establishment = EstablishmentRepository.get_by_id(db, establishment_id)
    return EntitlementService.can_create_professional(db, establishment)
