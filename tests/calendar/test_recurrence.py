"""Tests for recurrence date stepping."""

from datetime import date, timedelta

import pytest

from app.calendar.errors import InvalidArgumentError
from app.calendar.recurrence import (
    RecurrenceSpec,
    RecurrenceType,
    advance,
    normalize_days_of_week,
    sunday_weekday,
)


class TestSundayWeekday:
    def test_known_days(self):
        assert sunday_weekday(date(2024, 1, 7)) == 0  # Sunday
        assert sunday_weekday(date(2024, 1, 1)) == 1  # Monday
        assert sunday_weekday(date(2024, 1, 6)) == 6  # Saturday


class TestAdvanceDaily:
    def test_adds_interval_days(self):
        assert advance(date(2024, 1, 1), "daily", 1) == date(2024, 1, 2)
        assert advance(date(2024, 1, 30), "daily", 3) == date(2024, 2, 2)

    def test_crosses_year_boundary(self):
        assert advance(date(2023, 12, 31), RecurrenceType.DAILY, 1) == date(2024, 1, 1)

    def test_ignores_days_of_week(self):
        """Weekday filter only applies to weekly rules."""
        assert advance(date(2024, 1, 1), "daily", 2, [5]) == date(2024, 1, 3)


class TestAdvanceWeekly:
    def test_without_weekdays_adds_weeks(self):
        assert advance(date(2024, 1, 1), "weekly", 1) == date(2024, 1, 8)
        assert advance(date(2024, 1, 1), "weekly", 2) == date(2024, 1, 15)

    def test_empty_weekday_list_behaves_like_none(self):
        assert advance(date(2024, 1, 1), "weekly", 1, []) == date(2024, 1, 8)

    def test_with_weekdays_finds_next_matching_day(self):
        monday = date(2024, 1, 1)
        assert advance(monday, "weekly", 1, [1, 3, 5]) == date(2024, 1, 3)
        assert advance(date(2024, 1, 5), "weekly", 1, [1, 3, 5]) == date(2024, 1, 8)

    def test_single_weekday_lands_one_week_later(self):
        assert advance(date(2024, 1, 1), "weekly", 1, [1]) == date(2024, 1, 8)

    def test_interval_not_applied_with_weekdays(self):
        """With a weekday filter the very next matching weekday wins, whatever the interval."""
        assert advance(date(2024, 1, 1), "weekly", 3, [1, 3]) == date(2024, 1, 3)

    def test_mon_wed_fri_over_two_weeks(self):
        current = date(2024, 1, 1)
        occurrences = [current]
        while True:
            current = advance(current, "weekly", 1, [1, 3, 5])
            if current > date(2024, 1, 14):
                break
            occurrences.append(current)

        assert len(occurrences) == 6
        assert all(sunday_weekday(d) in {1, 3, 5} for d in occurrences)
        assert occurrences == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 5),
            date(2024, 1, 8),
            date(2024, 1, 10),
            date(2024, 1, 12),
        ]


class TestAdvanceMonthly:
    def test_adds_months(self):
        assert advance(date(2024, 1, 15), "monthly", 1) == date(2024, 2, 15)
        assert advance(date(2024, 1, 15), "monthly", 3) == date(2024, 4, 15)

    def test_rolls_over_year(self):
        assert advance(date(2024, 11, 10), "monthly", 2) == date(2025, 1, 10)

    def test_clamps_to_end_of_february_leap_year(self):
        assert advance(date(2024, 1, 31), "monthly", 1) == date(2024, 2, 29)

    def test_clamps_to_end_of_february_common_year(self):
        assert advance(date(2023, 1, 31), "monthly", 1) == date(2023, 2, 28)

    def test_clamps_to_thirty_day_month(self):
        assert advance(date(2024, 3, 31), "monthly", 1) == date(2024, 4, 30)

    def test_anchor_day_restores_month_end(self):
        assert advance(date(2024, 2, 29), "monthly", 1, anchor_day=31) == date(2024, 3, 31)
        assert advance(date(2024, 3, 31), "monthly", 1, anchor_day=31) == date(2024, 4, 30)

    def test_without_anchor_day_stays_on_clamped_day(self):
        assert advance(date(2024, 2, 29), "monthly", 1) == date(2024, 3, 29)


class TestAdvanceProperties:
    @pytest.mark.parametrize(
        ("rtype", "interval", "days"),
        [
            ("daily", 1, None),
            ("daily", 5, None),
            ("weekly", 1, None),
            ("weekly", 2, [0]),
            ("weekly", 1, [0, 1, 2, 3, 4, 5, 6]),
            ("monthly", 1, None),
            ("monthly", 12, None),
        ],
    )
    def test_pure_and_strictly_increasing(self, rtype, interval, days):
        start = date(2024, 1, 31)
        for offset in range(0, 40, 3):
            current = start + timedelta(days=offset)
            first = advance(current, rtype, interval, days)
            second = advance(current, rtype, interval, days)
            assert first == second
            assert first > current

    def test_does_not_mutate_weekday_list(self):
        days = [5, 1, 3]
        advance(date(2024, 1, 1), "weekly", 1, days)
        assert days == [5, 1, 3]


class TestAdvanceValidation:
    def test_unknown_type(self):
        with pytest.raises(InvalidArgumentError):
            advance(date(2024, 1, 1), "yearly", 1)

    def test_interval_below_one(self):
        with pytest.raises(InvalidArgumentError):
            advance(date(2024, 1, 1), "daily", 0)


class TestRecurrenceSpec:
    def test_build_defaults(self):
        spec = RecurrenceSpec.build("weekly")
        assert spec.recurrence_type is RecurrenceType.WEEKLY
        assert spec.interval == 1
        assert spec.end_date is None
        assert spec.days_of_week is None

    def test_build_none_interval_defaults_to_one(self):
        assert RecurrenceSpec.build("daily", None).interval == 1

    def test_build_normalizes_weekdays(self):
        spec = RecurrenceSpec.build("weekly", 1, None, [5, 1, 3, 1])
        assert spec.days_of_week == (1, 3, 5)

    def test_build_rejects_out_of_range_weekday(self):
        with pytest.raises(InvalidArgumentError):
            RecurrenceSpec.build("weekly", 1, None, [1, 7])

    def test_build_rejects_negative_interval(self):
        with pytest.raises(InvalidArgumentError):
            RecurrenceSpec.build("monthly", -1)

    def test_normalize_empty_list_is_none(self):
        assert normalize_days_of_week([]) is None
