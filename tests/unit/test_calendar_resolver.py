"""Open interval resolution from hours and blocks"""
import uuid
from datetime import date, datetime, time
from types import SimpleNamespace

from app.services.availability.calendar_resolver import (
    merge_intervals,
    open_intervals,
    subtract_intervals,
)

TUESDAY = date(2026, 3, 10)  # weekday 2 when Sunday is 0
PROFESSIONAL_ID = uuid.uuid4()


def hours(open_at=time(9, 0), close_at=time(18, 0), closed=False):
    return SimpleNamespace(open_time=open_at, close_time=close_at, closed=closed)


def recurring(start, end, weekday=2, professional_id=None, active=True):
    return SimpleNamespace(
        start_time=start, end_time=end, weekday=weekday,
        professional_id=professional_id, active=active,
    )


def punctual(start_at, end_at, professional_id=None):
    return SimpleNamespace(start_at=start_at, end_at=end_at, professional_id=professional_id)


class TestIntervalArithmetic:

    def test_merge_joins_overlapping_and_touching(self):
        assert merge_intervals([(60, 120), (0, 30), (30, 45), (100, 150)]) == [(0, 45), (60, 150)]

    def test_merge_drops_empty(self):
        assert merge_intervals([(10, 10), (20, 15)]) == []

    def test_block_inside_splits(self):
        assert subtract_intervals((540, 1080), [(720, 780)]) == [(540, 720), (780, 1080)]

    def test_block_covering_empties(self):
        assert subtract_intervals((540, 1080), [(500, 1100)]) == []

    def test_block_outside_is_ignored(self):
        assert subtract_intervals((540, 1080), [(0, 540), (1080, 1200)]) == [(540, 1080)]


class TestOpenIntervals:

    def test_plain_day(self):
        assert open_intervals(hours(), TUESDAY) == [(540, 1080)]

    def test_closed_or_missing_hours(self):
        assert open_intervals(hours(closed=True), TUESDAY) == []
        assert open_intervals(None, TUESDAY) == []
        assert open_intervals(hours(open_at=None), TUESDAY) == []

    def test_midnight_close_means_end_of_day(self):
        assert open_intervals(hours(open_at=time(20, 0), close_at=time(0, 0)), TUESDAY) == [(1200, 1440)]

    def test_recurring_block_on_matching_weekday(self):
        lunch = recurring(time(12, 0), time(13, 0))
        assert open_intervals(hours(), TUESDAY, recurring_blocks=[lunch]) == [(540, 720), (780, 1080)]

    def test_recurring_block_on_other_weekday_or_inactive(self):
        blocks = [recurring(time(12, 0), time(13, 0), weekday=3), recurring(time(10, 0), time(11, 0), active=False)]
        assert open_intervals(hours(), TUESDAY, recurring_blocks=blocks) == [(540, 1080)]

    def test_block_scoped_to_another_professional_is_ignored(self):
        block = recurring(time(12, 0), time(13, 0), professional_id=uuid.uuid4())
        assert open_intervals(
            hours(), TUESDAY, recurring_blocks=[block], professional_id=PROFESSIONAL_ID
        ) == [(540, 1080)]

    def test_block_scoped_to_the_professional_applies(self):
        block = recurring(time(12, 0), time(13, 0), professional_id=PROFESSIONAL_ID)
        assert open_intervals(
            hours(), TUESDAY, recurring_blocks=[block], professional_id=PROFESSIONAL_ID
        ) == [(540, 720), (780, 1080)]

    def test_punctual_block_is_clipped_to_the_day(self):
        holiday_eve = punctual(datetime(2026, 3, 9, 20, 0), datetime(2026, 3, 10, 10, 30))
        assert open_intervals(hours(), TUESDAY, punctual_blocks=[holiday_eve]) == [(630, 1080)]

    def test_punctual_block_on_another_day_is_ignored(self):
        block = punctual(datetime(2026, 3, 11, 9, 0), datetime(2026, 3, 11, 18, 0))
        assert open_intervals(hours(), TUESDAY, punctual_blocks=[block]) == [(540, 1080)]

    def test_overlapping_blocks_are_merged(self):
        result = open_intervals(
            hours(),
            TUESDAY,
            recurring_blocks=[recurring(time(12, 0), time(13, 0))],
            punctual_blocks=[punctual(datetime(2026, 3, 10, 12, 30), datetime(2026, 3, 10, 14, 0))],
        )
        assert result == [(540, 720), (840, 1080)]

    def test_professional_hours_narrow_the_window(self):
        professional_hours = SimpleNamespace(start_time=time(10, 0), end_time=time(20, 0), closed=False)
        assert open_intervals(hours(), TUESDAY, professional_hours=professional_hours) == [(600, 1080)]

    def test_professional_day_off(self):
        professional_hours = SimpleNamespace(start_time=None, end_time=None, closed=True)
        assert open_intervals(hours(), TUESDAY, professional_hours=professional_hours) == []
