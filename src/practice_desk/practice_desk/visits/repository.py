from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import NewVisit, VisitFilters, VisitRecord


class VisitRepository(Protocol):
    def create(self, visit: NewVisit) -> str:
        raise NotImplementedError

    def list(self, *, filters: Optional[VisitFilters] = None) -> Sequence[VisitRecord]:
        """Exact-match and date-range filters only; newest first."""

        raise NotImplementedError
