"""
Entitlement decisions over already-fetched billing state.

No queries and no writes here; EntitlementService loads the inputs.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.config.settings import get_settings
from app.models.establishment import EstablishmentStatus


class RejectReason:
    NO_ESTABLISHMENT = "NO_ESTABLISHMENT"
    SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"
    TRIAL_EXPIRED = "TRIAL_EXPIRED"
    APPOINTMENT_LIMIT_REACHED = "APPOINTMENT_LIMIT_REACHED"


REASON_MESSAGES = {
    RejectReason.NO_ESTABLISHMENT: "Establishment not found.",
    RejectReason.SUBSCRIPTION_INACTIVE: "This establishment is temporarily unavailable for online booking.",
    RejectReason.TRIAL_EXPIRED: "This establishment is temporarily unavailable for online booking.",
    RejectReason.APPOINTMENT_LIMIT_REACHED: "This establishment reached its monthly booking limit.",
}


@dataclass(frozen=True)
class EffectivePlan:
    code: str
    name: str
    max_professionals: Optional[int]
    max_appointments_month: Optional[int]


@dataclass(frozen=True)
class EntitlementDecision:
    accepted: bool
    reason: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason) if self.reason else None

    def to_dict(self) -> dict:
        if self.accepted:
            return {"can_accept": True}
        return {"can_accept": False, "reason": self.message, "error_code": self.reason}


ACCEPT = EntitlementDecision(accepted=True)


def free_plan() -> EffectivePlan:
    """Plan applied when the owner has no active subscription"""
    settings = get_settings()
    return EffectivePlan(
        code=settings.FREE_PLAN_CODE,
        name=settings.FREE_PLAN_NAME,
        max_professionals=settings.FREE_PLAN_MAX_PROFESSIONALS,
        max_appointments_month=settings.FREE_PLAN_MAX_APPOINTMENTS_MONTH,
    )


def resolve_plan(subscription) -> EffectivePlan:
    """Plan of an active subscription, else the free tier"""
    if subscription is None or subscription.status != "active" or subscription.plan is None:
        return free_plan()
    plan = subscription.plan
    return EffectivePlan(
        code=plan.code,
        name=plan.name,
        max_professionals=plan.max_professionals,
        max_appointments_month=plan.max_appointments_month,
    )


def is_trial_expired(establishment, now: datetime) -> bool:
    """A trial without an end date never expires; the end instant itself is still inside the trial"""
    if establishment.status != EstablishmentStatus.TRIAL.value:
        return False
    if establishment.trial_ends_at is None:
        return False
    return now > establishment.trial_ends_at


def can_accept(
        establishment,
        plan: Optional[EffectivePlan],
        appointments_this_month_count: int,
        now: datetime
) -> EntitlementDecision:
    """
    Decide whether a new booking may be accepted. First match wins:
        1. no establishment
        2. past_due / canceled
        3. trial expired
        4. monthly quota reached
    """
    if establishment is None:
        return EntitlementDecision(False, RejectReason.NO_ESTABLISHMENT)

    if establishment.status in (EstablishmentStatus.PAST_DUE.value, EstablishmentStatus.CANCELED.value):
        return EntitlementDecision(False, RejectReason.SUBSCRIPTION_INACTIVE)

    if is_trial_expired(establishment, now):
        return EntitlementDecision(False, RejectReason.TRIAL_EXPIRED)

    plan = plan or free_plan()
    if plan.max_appointments_month is not None and appointments_this_month_count >= plan.max_appointments_month:
        return EntitlementDecision(False, RejectReason.APPOINTMENT_LIMIT_REACHED)

    return ACCEPT


def can_add_professional(current_count: int, max_professionals: Optional[int]) -> bool:
    """None means unlimited"""
    return max_professionals is None or current_count < max_professionals
