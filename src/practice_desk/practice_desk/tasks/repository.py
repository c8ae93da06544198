from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import NewRecurringTask, RecurringTask, TaskFilters


class RecurringTaskRepository(Protocol):
    """Persistence contract for recurring tasks.

    Only exact-match filters are pushed down to storage; text search and the
    "due" view are applied by the service.
    """

    def get_by_id(self, task_id: str) -> Optional[RecurringTask]:
        raise NotImplementedError

    def list_all(self, *, filters: Optional[TaskFilters] = None) -> Sequence[RecurringTask]:
        """Ordered by next_occurrence ascending."""

        raise NotImplementedError

    def create(self, *, new: NewRecurringTask, next_occurrence, created_by: str, now: datetime) -> str:
        """Insert a task and return its id."""

        raise NotImplementedError

    def save(self, task: RecurringTask) -> bool:
        """Overwrite every mutable field of an existing task (last write wins)."""

        raise NotImplementedError

    def delete(self, task_id: str) -> bool:
        raise NotImplementedError
