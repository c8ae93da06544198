from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Authorization tiers understood by the engine."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class RecurrencePattern(str, Enum):
    """How often a recurring obligation comes due."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"
    YEARLY = "yearly"


class VisitTaskType(str, Enum):
    RECURRING = "recurring"
    AD_HOC = "ad-hoc"


class RosterTaskType(str, Enum):
    """Roster entries are either client visits (single) or activities (multi)."""

    SINGLE = "single"
    MULTI = "multi"


class AssignmentRule(str, Enum):
    """Independent mechanisms through which a task reaches an employee."""

    DIRECT = "direct"
    TEAM = "team"
    MAPPING = "mapping"
