"""
Tests for domain models.
"""

from datetime import date, datetime, time

import pytest

from slotcalendar.domain.exceptions import TimeFormatError, ValidationError
from slotcalendar.domain.models import (
    ProjectedSlot,
    Slot,
    SlotException,
    TimeRange,
    day_of_week,
    format_time,
    is_before,
    overlaps,
    parse_date,
    parse_optional_time,
    parse_time,
)


def _slot(**overrides) -> Slot:
    data = dict(
        id="s1",
        title="Office hours",
        day_of_week=1,
        start_time=time(9, 0),
        end_time=time(10, 0),
        effective_from=date(2024, 1, 1),
    )
    data.update(overrides)
    return Slot(**data)


class TestParseTime:
    """Tests for HH:MM parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [("09:00", time(9, 0)), ("9:05", time(9, 5)), ("00:00", time(0, 0)), ("23:59", time(23, 59))],
    )
    def test_valid_times(self, value, expected):
        assert parse_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "12:60", "0900", "9", "", "ab:cd", None, 930])
    def test_invalid_times_raise_format_error(self, value):
        with pytest.raises(TimeFormatError):
            parse_time(value)

    def test_format_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_time("25:00")

    def test_time_objects_pass_through_without_seconds(self):
        assert parse_time(time(9, 30, 15)) == time(9, 30)

    def test_optional_time_treats_empty_as_absent(self):
        assert parse_optional_time("") is None
        assert parse_optional_time(None) is None
        assert parse_optional_time("10:15") == time(10, 15)

    def test_format_time(self):
        assert format_time(time(7, 5)) == "07:05"
        assert format_time(None) is None

    def test_is_before(self):
        assert is_before(time(9, 0), time(9, 1))
        assert not is_before(time(9, 0), time(9, 0))
        assert not is_before(time(10, 0), time(9, 0))


class TestParseDate:
    """Tests for calendar date parsing."""

    def test_iso_string(self):
        assert parse_date("2024-03-11") == date(2024, 3, 11)

    def test_datetime_is_truncated_to_date(self):
        parsed = parse_date(datetime(2024, 3, 11, 15, 30))
        assert parsed == date(2024, 3, 11)
        assert type(parsed) is date

    @pytest.mark.parametrize("value", ["11.03.2024", "2024-02-30", "", "tomorrow", 20240311])
    def test_invalid_dates(self, value):
        with pytest.raises(ValidationError):
            parse_date(value)

    def test_day_of_week_starts_on_sunday(self):
        assert day_of_week(date(2024, 3, 10)) == 0  # Sunday
        assert day_of_week(date(2024, 3, 11)) == 1  # Monday
        assert day_of_week(date(2024, 3, 16)) == 6  # Saturday


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        tr = TimeRange.parse("09:00", "17:00")

        assert tr.start == time(9, 0)
        assert tr.end == time(17, 0)
        assert tr.duration_minutes() == 480
        assert str(tr) == "09:00 - 17:00"

    @pytest.mark.parametrize("start, end", [("17:00", "09:00"), ("09:00", "09:00")])
    def test_invalid_time_range_raises_error(self, start, end):
        with pytest.raises(ValidationError, match="Start time .* must be before end time"):
            TimeRange.parse(start, end)

    def test_overlaps(self):
        tr1 = TimeRange.parse("09:00", "12:00")
        tr2 = TimeRange.parse("11:00", "14:00")
        tr3 = TimeRange.parse("14:00", "17:00")

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)

    def test_touching_ranges_do_not_overlap(self):
        assert not overlaps(TimeRange.parse("09:00", "10:00"), TimeRange.parse("10:00", "11:00"))
        assert not overlaps(TimeRange.parse("10:00", "11:00"), TimeRange.parse("09:00", "10:00"))

    def test_containment_overlaps(self):
        outer = TimeRange.parse("08:00", "12:00")
        inner = TimeRange.parse("09:00", "10:00")

        assert overlaps(outer, inner)
        assert overlaps(inner, outer)
        assert overlaps(inner, TimeRange.parse("09:00", "10:00"))


class TestSlot:
    """Tests for Slot and SlotException records."""

    def test_to_dict_formats_times_and_dates(self):
        data = _slot().to_dict()

        assert data["start_time"] == "09:00"
        assert data["effective_from"] == "2024-01-01"
        assert data["effective_until"] is None

    def test_exception_time_range(self):
        moved = SlotException(
            id="e1", slot_id="s1", exception_date=date(2024, 3, 11),
            start_time=time(11, 0), end_time=time(12, 0),
        )
        cancelled = SlotException(
            id="e2", slot_id="s1", exception_date=date(2024, 3, 18),
            start_time=time(11, 0), end_time=time(12, 0), is_cancelled=True,
        )
        partial = SlotException(
            id="e3", slot_id="s1", exception_date=date(2024, 3, 25), start_time=time(11, 0),
        )

        assert moved.time_range == TimeRange.parse("11:00", "12:00")
        assert cancelled.time_range is None
        assert partial.time_range is None

    def test_projected_slot_display(self):
        slot = _slot()
        plain = ProjectedSlot(slot=slot, start_time=slot.start_time, end_time=slot.end_time)
        cancelled = ProjectedSlot(
            slot=slot, start_time=slot.start_time, end_time=slot.end_time,
            is_exception=True, is_cancelled=True, reason="Holiday",
        )

        assert plain.format_display() == "09:00 – 10:00 Office hours"
        assert cancelled.format_display() == "09:00 – 10:00 Office hours (cancelled): Holiday"
