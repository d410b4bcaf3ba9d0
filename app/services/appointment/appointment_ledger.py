# ============================================================================
# app/services/appointment/appointment_ledger.py
# Appointment state machine and manage-token handling
# ============================================================================
"""
State machine:

    booked -> confirmed -> completed
    booked -> completed
    booked | confirmed -> canceled
    booked | confirmed -> no_show

completed, canceled and no_show are terminal.
"""
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from app.config.settings import get_settings
from app.core.exceptions import BookingValidationError, NotModifiable
from app.models.appointment import Appointment, AppointmentStatus, TERMINAL_STATUSES

ALLOWED_TRANSITIONS = {
    AppointmentStatus.BOOKED.value: {
        AppointmentStatus.CONFIRMED.value,
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.CANCELED.value,
        AppointmentStatus.NO_SHOW.value,
    },
    AppointmentStatus.CONFIRMED.value: {
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.CANCELED.value,
        AppointmentStatus.NO_SHOW.value,
    },
}

COMPLETED_BY_VALUES = ("customer", "establishment", "professional")


def generate_manage_token() -> Tuple[str, str]:
    """New opaque token and the hash that gets stored"""
    token = secrets.token_urlsafe(get_settings().MANAGE_TOKEN_BYTES)
    return token, hash_token(token)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def verify_token(appointment: Optional[Appointment], token: Optional[str]) -> bool:
    if appointment is None or not token:
        return False
    return hmac.compare_digest(appointment.manage_token_hash, hash_token(token))


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def transition(
        appointment: Appointment,
        target: str,
        now: datetime,
        completed_by: Optional[str] = None
) -> Appointment:
    """
    Move appointment to target status, stamping canceled_at/completed_at.

    Raises:
        NotModifiable: the transition is not allowed from the current status
    """
    if not can_transition(appointment.status, target):
        raise NotModifiable(
            f"Cannot change an appointment from '{appointment.status}' to '{target}'."
        )

    if target == AppointmentStatus.COMPLETED.value:
        if completed_by not in COMPLETED_BY_VALUES:
            raise BookingValidationError(f"completed_by must be one of {', '.join(COMPLETED_BY_VALUES)}")
        appointment.completed_at = now
        appointment.completed_by = completed_by
    elif target == AppointmentStatus.CANCELED.value:
        appointment.canceled_at = now

    appointment.status = target
    return appointment


def is_terminal(appointment: Appointment) -> bool:
    return appointment.status in TERMINAL_STATUSES


def modification_deadline(appointment: Appointment) -> datetime:
    hours = appointment.establishment.reschedule_min_hours or 0
    return appointment.start_at - timedelta(hours=hours)


def ensure_self_service_window(appointment: Appointment, now: datetime) -> None:
    """
    Customers may reschedule or cancel only while
    now < start_at - reschedule_min_hours.
    """
    if now >= modification_deadline(appointment):
        hours = appointment.establishment.reschedule_min_hours
        raise NotModifiable(
            f"Changes must be made at least {hours} hour(s) before the appointment."
        )


def next_seat(used_seats: Iterable[int], capacity: int) -> Optional[int]:
    """Lowest free seat index below capacity, or None when all are taken"""
    used = set(used_seats)
    for seat in range(capacity):
        if seat not in used:
            return seat
    return None
