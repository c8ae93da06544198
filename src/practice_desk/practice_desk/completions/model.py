from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CompletionRecord:
    """Ledger entry: one (task, client, period) obligation and whether it was discharged."""

    completion_id: str
    recurring_task_id: str
    client_id: str
    period_key: str
    is_completed: bool
    completed_at: Optional[datetime]
    completed_by: Optional[str]
    arn_number: Optional[str] = None
    arn_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.completion_id,
            "recurring_task_id": self.recurring_task_id,
            "client_id": self.client_id,
            "period_key": self.period_key,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "completed_by": self.completed_by,
            "arn_number": self.arn_number,
            "arn_name": self.arn_name,
        }


@dataclass(frozen=True)
class CompletionPayload:
    completed_by: str
    completed_at: datetime
    is_completed: bool = True
    arn_number: Optional[str] = None
    arn_name: Optional[str] = None


@dataclass(frozen=True)
class CompletionRate:
    completed: int
    expected: int

    @property
    def rate(self) -> float:
        """Percentage in [0, 100]; 0 when nothing is due yet."""
        if self.expected <= 0:
            return 0.0
        return self.completed * 100.0 / self.expected

    def to_dict(self) -> dict:
        return {"completed": self.completed, "expected": self.expected, "rate": round(self.rate, 2)}


@dataclass(frozen=True)
class ClientPeriodStatus:
    client_id: str
    period_key: str
    period_label: str
    is_completed: bool
    completed_by: Optional[str] = None
    arn_number: Optional[str] = None
