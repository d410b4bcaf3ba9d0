"""Loads billing state and runs the entitlement guard"""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.establishment import Establishment
from app.repositories import (
    AppointmentRepository,
    EstablishmentRepository,
    ProfessionalRepository,
    SubscriptionRepository,
)
from app.services.entitlement.entitlement_guard import (
    EffectivePlan,
    EntitlementDecision,
    can_accept,
    can_add_professional,
    is_trial_expired,
    resolve_plan,
)
from app.utils.time_utils import local_now
import logging

logger = logging.getLogger(__name__)


class EntitlementService:
    """Plan resolution, quota usage and booking acceptance per establishment"""

    @staticmethod
    def effective_plan(db: Session, establishment: Establishment) -> EffectivePlan:
        subscription = SubscriptionRepository.latest_active(db, establishment.owner_user_id)
        return resolve_plan(subscription)

    @staticmethod
    def evaluate(db: Session, establishment: Optional[Establishment], now: Optional[datetime] = None) -> EntitlementDecision:
        """Fetch the guard inputs for an establishment and decide"""
        now = now or local_now()
        if establishment is None:
            return can_accept(None, None, 0, now)

        plan = EntitlementService.effective_plan(db, establishment)
        count = AppointmentRepository.count_created_in_month(db, establishment.id, now)
        decision = can_accept(establishment, plan, count, now)

        if not decision.accepted:
            logger.info(f"Establishment {establishment.id} cannot accept bookings: {decision.reason}")
        return decision

    @staticmethod
    def can_establishment_accept_bookings(
            db: Session,
            establishment_id: UUID,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Returns:
            {"can_accept": True} or
            {"can_accept": False, "reason": "...", "error_code": "TRIAL_EXPIRED" | ...}
        """
        establishment = EstablishmentRepository.get_by_id(db, establishment_id)
        return EntitlementService.evaluate(db, establishment, now=now).to_dict()

    @staticmethod
    def can_create_professional(db: Session, establishment: Establishment) -> Dict[str, Any]:
        """Gate for the admin screen that adds professionals"""
        plan = EntitlementService.effective_plan(db, establishment)
        current = ProfessionalRepository.count(db, establishment.id)
        allowed = can_add_professional(current, plan.max_professionals)

        return {
            "allowed": allowed,
            "reason": None if allowed else f"Your plan allows up to {plan.max_professionals} professionals.",
            "current_professionals": current,
            "max_professionals": plan.max_professionals,
        }

    @staticmethod
    def get_subscription_usage(db: Session, establishment: Establishment, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Plan limits against current usage, for the subscription screen"""
        now = now or local_now()
        subscription = SubscriptionRepository.latest_active(db, establishment.owner_user_id)
        plan = resolve_plan(subscription)

        professionals = ProfessionalRepository.count(db, establishment.id)
        appointments = AppointmentRepository.count_created_in_month(db, establishment.id, now)

        return {
            "plan": {
                "code": plan.code,
                "name": plan.name,
                "max_professionals": plan.max_professionals,
                "max_appointments_month": plan.max_appointments_month,
            },
            "usage": {
                "professionals": professionals,
                "appointments_this_month": appointments,
            },
            "subscription": {
                "status": subscription.status if subscription else establishment.status,
                "current_period_end": (
                    subscription.current_period_end.isoformat()
                    if subscription and subscription.current_period_end else None
                ),
                "trial_ends_at": establishment.trial_ends_at.isoformat() if establishment.trial_ends_at else None,
                "trial_expired": is_trial_expired(establishment, now),
            },
            "can_add_professional": can_add_professional(professionals, plan.max_professionals),
            "can_add_appointment": (
                plan.max_appointments_month is None or appointments < plan.max_appointments_month
            ),
            "professionals_remaining": (
                None if plan.max_professionals is None else max(0, plan.max_professionals - professionals)
            ),
            "appointments_remaining": (
                None if plan.max_appointments_month is None else max(0, plan.max_appointments_month - appointments)
            ),
        }
