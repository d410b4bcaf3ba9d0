"""
Calendar Resolver

Collapses one establishment's weekly hours, optional professional hours and
recurring/punctual blocks into the open intervals of a single day.

Intervals are half-open (start, end) pairs in minutes after midnight.
"""
import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from app.utils.time_utils import minutes_of_day, sunday_based_weekday

Interval = Tuple[int, int]

DAY_MINUTES = 24 * 60


def _close_minutes(value: time) -> int:
    # 00:00 as a closing time means midnight at the end of the day
    minutes = minutes_of_day(value)
    return DAY_MINUTES if minutes == 0 else minutes


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort and merge overlapping or touching intervals, dropping empty ones"""
    merged: List[Interval] = []
    for start, end in sorted(i for i in intervals if i[1] > i[0]):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def subtract_intervals(base: Interval, blocks: Iterable[Interval]) -> List[Interval]:
    """
    Interval difference base minus the union of blocks.

    A block inside base splits it, a block covering it empties it, blocks
    outside are ignored.
    """
    result: List[Interval] = []
    cursor, end = base
    for block_start, block_end in merge_intervals(blocks):
        if block_end <= cursor or block_start >= end:
            continue
        if block_start > cursor:
            result.append((cursor, block_start))
        cursor = max(cursor, block_end)
        if cursor >= end:
            break
    if cursor < end:
        result.append((cursor, end))
    return result


def _applies_to(block, professional_id: Optional[UUID]) -> bool:
    return block.professional_id is None or block.professional_id == professional_id


def _punctual_minutes(block, day: date) -> Optional[Interval]:
    """Portion of an absolute block falling on day, in minutes"""
    day_start = datetime.combine(day, time.min)
    day_end = day_start + timedelta(days=1)
    start = max(block.start_at, day_start)
    end = min(block.end_at, day_end)
    if end <= start:
        return None
    return (
        int((start - day_start).total_seconds() // 60),
        math.ceil((end - day_start).total_seconds() / 60),
    )


def base_interval(business_hours, professional_hours=None) -> Optional[Interval]:
    """Working window for the weekday, or None when closed"""
    if business_hours is None or business_hours.closed:
        return None
    if business_hours.open_time is None or business_hours.close_time is None:
        return None

    start = minutes_of_day(business_hours.open_time)
    end = _close_minutes(business_hours.close_time)

    if professional_hours is not None:
        if professional_hours.closed:
            return None
        if professional_hours.start_time is not None:
            start = max(start, minutes_of_day(professional_hours.start_time))
        if professional_hours.end_time is not None:
            end = min(end, _close_minutes(professional_hours.end_time))

    if end <= start:
        return None
    return start, end


def open_intervals(
        business_hours,
        day: date,
        recurring_blocks: Iterable = (),
        punctual_blocks: Iterable = (),
        professional_id: Optional[UUID] = None,
        professional_hours=None
) -> List[Interval]:
    """
    Open intervals for one professional on one day.

    Args:
        business_hours: BusinessHours row for day's weekday (None = closed)
        day: the calendar date
        recurring_blocks: RecurringTimeBlock-like rows
        punctual_blocks: PunctualTimeBlock-like rows
        professional_id: professional being queried; None only matches
            establishment-wide blocks
        professional_hours: optional ProfessionalHours row for the weekday

    Returns:
        Ascending list of non-empty (start, end) minute pairs.
    """
    base = base_interval(business_hours, professional_hours)
    if base is None:
        return []

    weekday = sunday_based_weekday(day)
    blocks: List[Interval] = []

    for block in recurring_blocks:
        if not block.active or block.weekday != weekday or not _applies_to(block, professional_id):
            continue
        blocks.append((minutes_of_day(block.start_time), _close_minutes(block.end_time)))

    for block in punctual_blocks:
        if not _applies_to(block, professional_id):
            continue
        minutes = _punctual_minutes(block, day)
        if minutes:
            blocks.append(minutes)

    return subtract_intervals(base, blocks)
