from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ..core.exceptions import ValidationError


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date."""
    raw = (value or "").strip()
    try:
        if len(raw) > 10:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError.for_field(field_name, f"Invalid date for {field_name}: {value!r}")


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    return parse_iso_date(str(value), field_name)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        raise NotImplementedError


class SystemClock:
    def now(self) -> datetime:
        return now_local()

    def today(self) -> date:
        return now_local().date()


class FixedClock:
    """Clock pinned to one instant; used by tests and back-fill scripts."""

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.date()
