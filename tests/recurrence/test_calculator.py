from __future__ import annotations

from datetime import date, timedelta

import pytest

from practice_desk.core.enums import RecurrencePattern
from practice_desk.core.exceptions import ValidationError
from practice_desk.recurrence.calculator import (
    describe,
    month_key,
    next_boundary,
    parse_pattern,
    period_key,
    period_label,
    periods_between,
)


@pytest.mark.parametrize(
    "d, pattern, expected",
    [
        (date(2025, 2, 15), RecurrencePattern.MONTHLY, "2025-02"),
        (date(2025, 2, 15), RecurrencePattern.QUARTERLY, "2025-Q1"),
        (date(2025, 4, 1), RecurrencePattern.QUARTERLY, "2025-Q2"),
        (date(2025, 12, 31), RecurrencePattern.QUARTERLY, "2025-Q4"),
        (date(2025, 6, 30), RecurrencePattern.HALF_YEARLY, "2025-H1"),
        (date(2025, 7, 1), RecurrencePattern.HALF_YEARLY, "2025-H2"),
        (date(2025, 7, 1), RecurrencePattern.YEARLY, "2025"),
    ],
)
def test_period_key_formats(d, pattern, expected):
    assert period_key(d, pattern) == expected


def test_month_key_ignores_pattern():
    assert month_key(date(2025, 1, 10)) == "2025-01"


def test_period_label_is_human_readable():
    assert period_label(date(2025, 1, 1), RecurrencePattern.MONTHLY) == "January 2025"
    assert period_label(date(2025, 5, 1), RecurrencePattern.QUARTERLY) == "Q2 2025"
    assert period_label(date(2025, 9, 1), RecurrencePattern.HALF_YEARLY) == "H2 2025"
    assert period_label(date(2025, 9, 1), RecurrencePattern.YEARLY) == "2025"


@pytest.mark.parametrize("pattern", list(RecurrencePattern))
def test_next_boundary_is_strictly_later(pattern):
    d = date(2024, 1, 1)
    while d < date(2026, 1, 1):
        assert next_boundary(d, pattern) > d
        d += timedelta(days=17)


def test_next_boundary_steps():
    d = date(2025, 1, 1)
    assert next_boundary(d, RecurrencePattern.MONTHLY) == date(2025, 2, 1)
    assert next_boundary(d, RecurrencePattern.QUARTERLY) == date(2025, 4, 1)
    assert next_boundary(d, RecurrencePattern.HALF_YEARLY) == date(2025, 7, 1)
    assert next_boundary(d, RecurrencePattern.YEARLY) == date(2026, 1, 1)


def test_month_end_is_clamped_then_restored_by_anchor():
    feb = next_boundary(date(2025, 1, 31), RecurrencePattern.MONTHLY)
    assert feb == date(2025, 2, 28)
    assert next_boundary(feb, RecurrencePattern.MONTHLY, anchor_day=31) == date(2025, 3, 31)


def test_leap_day_yearly():
    assert next_boundary(date(2024, 2, 29), RecurrencePattern.YEARLY) == date(2025, 2, 28)


def test_yearly_over_three_years_yields_three_periods():
    start = date(2025, 1, 1)
    periods = periods_between(start, date(2028, 1, 1), RecurrencePattern.YEARLY)
    assert [p.key for p in periods] == ["2025", "2026", "2027"]


def test_quarterly_over_one_year_yields_four_periods():
    periods = periods_between(date(2025, 1, 1), date(2026, 1, 1), RecurrencePattern.QUARTERLY)
    assert [p.key for p in periods] == ["2025-Q1", "2025-Q2", "2025-Q3", "2025-Q4"]
    assert periods[1].boundary_date == date(2025, 4, 1)


def test_inclusive_keeps_boundary_on_end_date():
    start, end = date(2025, 1, 1), date(2025, 4, 1)
    assert len(periods_between(start, end, RecurrencePattern.QUARTERLY)) == 1
    assert len(periods_between(start, end, RecurrencePattern.QUARTERLY, inclusive=True)) == 2


def test_periods_between_is_anchored_on_start_day():
    periods = periods_between(date(2025, 1, 31), date(2025, 5, 1), RecurrencePattern.MONTHLY)
    assert [p.boundary_date for p in periods] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_periods_between_is_restartable():
    args = (date(2025, 3, 15), date(2026, 3, 15), RecurrencePattern.MONTHLY)
    assert periods_between(*args) == periods_between(*args)


def test_empty_range():
    assert periods_between(date(2025, 1, 1), date(2025, 1, 1), RecurrencePattern.MONTHLY) == []


def test_parse_pattern():
    assert parse_pattern(" Half-Yearly ") == RecurrencePattern.HALF_YEARLY
    with pytest.raises(ValidationError) as exc:
        parse_pattern("fortnightly")
    assert "recurrence_pattern" in exc.value.fields


def test_describe():
    assert describe(RecurrencePattern.QUARTERLY) == "Every 3 months"
