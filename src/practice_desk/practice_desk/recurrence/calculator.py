"""Recurrence arithmetic for periodic obligations.

Everything here is a pure function of its arguments: no clock reads, no I/O.
Month arithmetic goes through ``relativedelta`` so a cycle anchored on the
31st lands on the last day of shorter months (Jan 31 -> Feb 28 -> Mar 31).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from ..core.constants import MONTHS_PER_CYCLE, PATTERN_DESCRIPTIONS
from ..core.enums import RecurrencePattern
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Period:
    """One cycle of a recurring obligation."""

    key: str
    label: str
    boundary_date: date


def parse_pattern(value: Union[str, RecurrencePattern]) -> RecurrencePattern:
    if isinstance(value, RecurrencePattern):
        return value
    try:
        return RecurrencePattern((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in RecurrencePattern)
        raise ValidationError.for_field(
            "recurrence_pattern", f"Invalid recurrence pattern {value!r} (expected one of: {allowed})"
        )


def month_key(d: date) -> str:
    """``YYYY-MM`` bucket used for reporting, whatever the task's pattern."""
    return f"{d.year:04d}-{d.month:02d}"


def period_key(d: date, pattern: RecurrencePattern) -> str:
    """Canonical key of the cycle containing ``d``.

    Keys sort lexicographically in chronological order within one pattern.
    """
    if pattern == RecurrencePattern.MONTHLY:
        return month_key(d)
    if pattern == RecurrencePattern.QUARTERLY:
        return f"{d.year:04d}-Q{(d.month - 1) // 3 + 1}"
    if pattern == RecurrencePattern.HALF_YEARLY:
        return f"{d.year:04d}-H{1 if d.month <= 6 else 2}"
    if pattern == RecurrencePattern.YEARLY:
        return f"{d.year:04d}"
    raise ValidationError.for_field("recurrence_pattern", f"Unsupported recurrence pattern: {pattern!r}")


def period_label(d: date, pattern: RecurrencePattern) -> str:
    if pattern == RecurrencePattern.MONTHLY:
        return d.strftime("%B %Y")
    if pattern == RecurrencePattern.QUARTERLY:
        return f"Q{(d.month - 1) // 3 + 1} {d.year}"
    if pattern == RecurrencePattern.HALF_YEARLY:
        return f"H{1 if d.month <= 6 else 2} {d.year}"
    return str(d.year)


def next_boundary(d: date, pattern: RecurrencePattern, *, anchor_day: Optional[int] = None) -> date:
    """First cycle start strictly after ``d``.

    ``anchor_day`` is the start date's day-of-month; the result is normalised to
    it and clamped to the end of shorter months. Without it ``d.day`` is used.
    """
    months = MONTHS_PER_CYCLE.get(pattern)
    if months is None:
        raise ValidationError.for_field("recurrence_pattern", f"Unsupported recurrence pattern: {pattern!r}")

    day = int(anchor_day) if anchor_day else d.day
    # relativedelta(day=N) clamps N to the month length.
    return d + relativedelta(months=months, day=day)


def periods_between(
    start: date,
    end: date,
    pattern: RecurrencePattern,
    *,
    inclusive: bool = False,
) -> list[Period]:
    """Cycle boundaries from ``start`` up to ``end``.

    The range is half-open (``boundary < end``) unless ``inclusive`` is set, in
    which case a boundary falling exactly on ``end`` is kept.
    """
    out: list[Period] = []
    current = start
    while current < end or (inclusive and current == end):
        out.append(Period(key=period_key(current, pattern), label=period_label(current, pattern), boundary_date=current))
        current = next_boundary(current, pattern, anchor_day=start.day)
    return out


def describe(pattern: RecurrencePattern) -> str:
    return PATTERN_DESCRIPTIONS.get(pattern, "Unknown pattern")
