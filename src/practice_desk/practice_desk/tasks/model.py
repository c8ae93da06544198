from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RecurrencePattern, TaskPriority, TaskStatus
from ..recurrence.calculator import describe


@dataclass(frozen=True)
class TeamMemberMapping:
    """Which employee serves which clients for one task."""

    user_id: str
    user_name: str
    client_ids: tuple[str, ...]

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "user_name": self.user_name, "client_ids": list(self.client_ids)}

    @classmethod
    def from_dict(cls, data: dict) -> "TeamMemberMapping":
        return cls(
            user_id=str(data.get("user_id") or data.get("userId") or ""),
            user_name=str(data.get("user_name") or data.get("userName") or ""),
            client_ids=tuple(str(c) for c in (data.get("client_ids") or data.get("clientIds") or [])),
        )


@dataclass(frozen=True)
class CompletionHistoryEntry:
    """Denormalized summary of one finished cycle."""

    completed_on: datetime
    completed_by: str
    period_key: str
    arn_number: Optional[str] = None
    arn_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "completed_on": self.completed_on.isoformat(),
            "completed_by": self.completed_by,
            "period_key": self.period_key,
            "arn_number": self.arn_number,
            "arn_name": self.arn_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompletionHistoryEntry":
        completed_on = data.get("completed_on")
        if isinstance(completed_on, str):
            completed_on = datetime.fromisoformat(completed_on)
        return cls(
            completed_on=completed_on,
            completed_by=str(data.get("completed_by") or ""),
            period_key=str(data.get("period_key") or ""),
            arn_number=data.get("arn_number"),
            arn_name=data.get("arn_name"),
        )


@dataclass(frozen=True)
class RecurringTask:
    """Domain entity: a periodically repeating obligation."""

    task_id: str
    title: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    recurrence_pattern: RecurrencePattern
    start_date: date
    next_occurrence: date
    created_by: str
    end_date: Optional[date] = None
    is_paused: bool = False
    contact_ids: tuple[str, ...] = ()
    team_id: Optional[str] = None
    team_member_mappings: tuple[TeamMemberMapping, ...] = ()
    requires_arn: bool = False
    completion_history: tuple[CompletionHistoryEntry, ...] = ()
    category_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_mappings(self) -> bool:
        return len(self.team_member_mappings) > 0

    @property
    def served_client_ids(self) -> tuple[str, ...]:
        """``contact_ids`` plus every mapped client, deduplicated, first-seen order."""
        seen: dict[str, None] = {}
        for cid in self.contact_ids:
            seen.setdefault(cid, None)
        for m in self.team_member_mappings:
            for cid in m.client_ids:
                seen.setdefault(cid, None)
        return tuple(seen)

    @property
    def is_exhausted(self) -> bool:
        return self.status == TaskStatus.COMPLETED and self.end_date is not None

    def to_dict(self) -> dict:
        return {
            "id": self.task_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "recurrence_pattern": self.recurrence_pattern.value,
            "recurrence_description": describe(self.recurrence_pattern),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "next_occurrence": self.next_occurrence.isoformat(),
            "is_paused": self.is_paused,
            "is_exhausted": self.is_exhausted,
            "contact_ids": list(self.contact_ids),
            "team_id": self.team_id,
            "team_member_mappings": [m.to_dict() for m in self.team_member_mappings],
            "requires_arn": self.requires_arn,
            "completion_history": [h.to_dict() for h in self.completion_history],
            "category_id": self.category_id,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class TaskFilters:
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[str] = None
    is_paused: Optional[bool] = None
    search: Optional[str] = None
    due_only: bool = False
    limit: Optional[int] = None


@dataclass(frozen=True)
class NewRecurringTask:
    """Validated input for creating a task (see ``tasks.validation``)."""

    title: str
    recurrence_pattern: RecurrencePattern
    start_date: date
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    end_date: Optional[date] = None
    next_occurrence: Optional[date] = None
    contact_ids: tuple[str, ...] = ()
    team_id: Optional[str] = None
    team_member_mappings: tuple[TeamMemberMapping, ...] = ()
    requires_arn: bool = False
    category_id: Optional[str] = None
