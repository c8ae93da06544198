from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import RosterEntry


class RosterRepository(Protocol):
    def list_entries(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> Sequence[RosterEntry]:
        """Ordered by start time ascending."""

        raise NotImplementedError
