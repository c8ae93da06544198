from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RosterTaskType


@dataclass(frozen=True)
class RosterEntry:
    """Pre-planned visit or activity, managed outside this engine."""

    entry_id: str
    user_id: str
    user_name: str
    task_type: RosterTaskType
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    task_detail: Optional[str] = None
    task_date: Optional[date] = None
    time_start: Optional[datetime] = None
    time_end: Optional[datetime] = None

    @property
    def effective_date(self) -> Optional[date]:
        if self.task_date:
            return self.task_date
        return self.time_start.date() if self.time_start else None
