"""
Slot Generation

Turns open intervals into offerable start times, considering:
- Service duration and trailing buffer
- Existing bookings and the professional's capacity
- The booking horizon (no past starts, nothing beyond max_future_days)

Pure: callers load the rows and re-run this at commit time.
"""
from datetime import date, datetime, timedelta
from typing import Iterable, List, Sequence, Tuple

from app.core.exceptions import BookingValidationError
from app.models.appointment import ACTIVE_STATUSES
from app.utils.time_utils import at_minutes


def _validate_parameters(duration_minutes: int, interval_minutes: int, buffer_minutes: int, capacity: int):
    if duration_minutes is None or duration_minutes <= 0:
        raise BookingValidationError("duration_minutes must be greater than zero")
    if interval_minutes is None or interval_minutes <= 0:
        raise BookingValidationError("interval_minutes must be greater than zero")
    if buffer_minutes is None or buffer_minutes < 0:
        raise BookingValidationError("buffer_minutes cannot be negative")
    if capacity is None or capacity < 1:
        raise BookingValidationError("capacity must be at least 1")


def is_within_horizon(day: date, now: datetime, max_future_days: int) -> bool:
    """False for past days and days further than max_future_days from today"""
    today = now.date()
    if day < today:
        return False
    return (day - today).days <= max_future_days


def occupancy(
        start: datetime,
        duration_minutes: int,
        buffer_minutes: int,
        existing_appointments: Iterable
) -> int:
    """
    Number of live appointments overlapping a candidate.

    An appointment holds [start_at, end_at + buffer); the candidate needs
    [start, start + duration + buffer).
    """
    buffer = timedelta(minutes=buffer_minutes)
    candidate_end = start + timedelta(minutes=duration_minutes) + buffer

    count = 0
    for appointment in existing_appointments:
        if appointment.status not in ACTIVE_STATUSES:
            continue
        if start < appointment.end_at + buffer and candidate_end > appointment.start_at:
            count += 1
    return count


def available_starts(
        open_intervals: Sequence[Tuple[int, int]],
        duration_minutes: int,
        interval_minutes: int,
        buffer_minutes: int,
        existing_appointments: Iterable,
        capacity: int,
        now: datetime,
        max_future_days: int,
        day: date
) -> List[datetime]:
    """
    Enumerate bookable starts for one professional on one day.

    Algorithm:
        1. Reject the whole day if it is outside the booking horizon
        2. For each interval walk t = start, start + interval_minutes, ...
           while t + duration + buffer fits in the interval
        3. Keep t when occupancy(t) < capacity and, today, t > now

    Returns:
        Strictly ascending list of naive datetimes.
    """
    _validate_parameters(duration_minutes, interval_minutes, buffer_minutes, capacity)

    if not is_within_horizon(day, now, max_future_days):
        return []

    existing = [a for a in existing_appointments if a.status in ACTIVE_STATUSES]
    is_today = day == now.date()

    starts: List[datetime] = []
    for interval_start, interval_end in open_intervals:
        t = interval_start
        while t + duration_minutes + buffer_minutes <= interval_end:
            candidate = at_minutes(day, t)
            if not (is_today and candidate <= now):
                if occupancy(candidate, duration_minutes, buffer_minutes, existing) < capacity:
                    starts.append(candidate)
            t += interval_minutes

    return starts


def format_slots(starts: Iterable[datetime]) -> List[str]:
    """Render starts as "HH:MM" strings"""
    return [start.strftime("%H:%M") for start in starts]
