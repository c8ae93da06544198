"""Turning request payloads into validated task values.

Both creation and updates end in ``validate_task_shape`` so a patched task
obeys exactly the same rules as a freshly created one.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from ..common.datetime_utils import parse_iso_date, parse_optional_date
from ..common.validators import optional_text, require_max_length, require_non_empty
from ..core.constants import MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from ..core.enums import TaskPriority, TaskStatus
from ..core.exceptions import ValidationError
from ..recurrence.calculator import parse_pattern
from .model import NewRecurringTask, RecurringTask, TeamMemberMapping

STRUCTURAL_FIELDS = frozenset(
    {
        "recurrence_pattern",
        "start_date",
        "end_date",
        "next_occurrence",
        "contact_ids",
        "team_id",
        "team_member_mappings",
        "requires_arn",
    }
)
EDITABLE_FIELDS = STRUCTURAL_FIELDS | {"title", "description", "priority", "status", "category_id"}


def parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError.for_field(field_name, f"Invalid {field_name} {value!r} (expected one of: {allowed})")


def _id_list(value: Any, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError.for_field(field_name, f"{field_name} must be a list of ids")
    seen: dict[str, None] = {}
    for v in value:
        s = str(v).strip()
        if s:
            seen.setdefault(s, None)
    return tuple(seen)


def _mappings(value: Any) -> tuple[TeamMemberMapping, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValidationError.for_field("team_member_mappings", "team_member_mappings must be a list")
    out = []
    for m in value:
        if isinstance(m, TeamMemberMapping):
            out.append(m)
        elif isinstance(m, Mapping):
            out.append(TeamMemberMapping.from_dict(m))
        else:
            raise ValidationError.for_field("team_member_mappings", "each mapping must be an object")
    return tuple(out)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _date(value: Any, field_name: str) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return parse_optional_date(str(value), field_name)


def validate_mappings(mappings: Iterable[TeamMemberMapping]) -> None:
    errors: list[str] = []
    seen: set[str] = set()
    for m in mappings:
        if not m.user_id:
            errors.append("every mapping needs a user_id")
            continue
        if m.user_id in seen:
            errors.append(f"user {m.user_id} is mapped more than once")
        seen.add(m.user_id)
        if not m.client_ids:
            errors.append(f"user {m.user_id} has no clients")
    if errors:
        raise ValidationError("Invalid team member mappings", {"team_member_mappings": errors})


def validate_task_shape(
    *,
    title: str,
    description: str,
    start_date: date,
    end_date: Optional[date],
    next_occurrence: date,
    mappings: Iterable[TeamMemberMapping],
) -> None:
    errors: dict[str, list[str]] = {}

    def check(field_name: str, fn) -> None:
        try:
            fn()
        except ValidationError as e:
            for k, msgs in (e.fields or {field_name: [str(e)]}).items():
                errors.setdefault(k, []).extend(msgs)

    check("title", lambda: require_max_length(require_non_empty(title, "title"), "title", MAX_TITLE_LENGTH))
    check("description", lambda: require_max_length(description or "", "description", MAX_DESCRIPTION_LENGTH))
    if end_date is not None and end_date <= start_date:
        errors.setdefault("end_date", []).append("end_date must be after start_date")
    if next_occurrence < start_date:
        errors.setdefault("next_occurrence", []).append("next_occurrence cannot be before start_date")
    check("team_member_mappings", lambda: validate_mappings(mappings))

    if errors:
        raise ValidationError("Invalid recurring task", errors)


def parse_new_task(payload: Mapping[str, Any]) -> NewRecurringTask:
    if "recurrence_pattern" not in payload and "pattern" not in payload:
        raise ValidationError.for_field("recurrence_pattern", "recurrence_pattern is required")
    raw_start = payload.get("start_date")
    if not raw_start:
        raise ValidationError.for_field("start_date", "start_date is required")

    start_date = raw_start if isinstance(raw_start, date) else parse_iso_date(str(raw_start), "start_date")
    new = NewRecurringTask(
        title=(payload.get("title") or "").strip(),
        description=(payload.get("description") or "").strip(),
        recurrence_pattern=parse_pattern(payload.get("recurrence_pattern") or payload.get("pattern")),
        start_date=start_date,
        end_date=_date(payload.get("end_date"), "end_date"),
        next_occurrence=_date(payload.get("next_occurrence"), "next_occurrence"),
        priority=parse_enum(TaskPriority, payload.get("priority") or TaskPriority.MEDIUM, "priority"),
        status=parse_enum(TaskStatus, payload.get("status") or TaskStatus.PENDING, "status"),
        contact_ids=_id_list(payload.get("contact_ids"), "contact_ids"),
        team_id=optional_text(payload.get("team_id"), "team_id"),
        team_member_mappings=_mappings(payload.get("team_member_mappings")),
        requires_arn=_flag(payload.get("requires_arn", False)),
        category_id=optional_text(payload.get("category_id"), "category_id"),
    )
    validate_task_shape(
        title=new.title,
        description=new.description,
        start_date=new.start_date,
        end_date=new.end_date,
        next_occurrence=new.next_occurrence or new.start_date,
        mappings=new.team_member_mappings,
    )
    return new


def changed_fields(patch: Mapping[str, Any]) -> set[str]:
    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(
            "Unknown or read-only fields in update",
            {name: ["cannot be updated"] for name in sorted(unknown)},
        )
    return set(patch)


def apply_patch(task: RecurringTask, patch: Mapping[str, Any]) -> RecurringTask:
    """Merge ``patch`` into ``task`` and validate the result as a whole."""
    changes: dict[str, Any] = {}
    if "title" in patch:
        changes["title"] = (patch["title"] or "").strip()
    if "description" in patch:
        changes["description"] = (patch["description"] or "").strip()
    if "priority" in patch:
        changes["priority"] = parse_enum(TaskPriority, patch["priority"], "priority")
    if "status" in patch:
        changes["status"] = parse_enum(TaskStatus, patch["status"], "status")
    if "category_id" in patch:
        changes["category_id"] = optional_text(patch["category_id"], "category_id")
    if "recurrence_pattern" in patch:
        changes["recurrence_pattern"] = parse_pattern(patch["recurrence_pattern"])
    if "start_date" in patch:
        start = _date(patch["start_date"], "start_date")
        if start is None:
            raise ValidationError.for_field("start_date", "start_date is required")
        changes["start_date"] = start
    if "end_date" in patch:
        changes["end_date"] = _date(patch["end_date"], "end_date")
    if "next_occurrence" in patch:
        nxt = _date(patch["next_occurrence"], "next_occurrence")
        if nxt is None:
            raise ValidationError.for_field("next_occurrence", "next_occurrence cannot be cleared")
        changes["next_occurrence"] = nxt
    if "contact_ids" in patch:
        changes["contact_ids"] = _id_list(patch["contact_ids"], "contact_ids")
    if "team_id" in patch:
        changes["team_id"] = optional_text(patch["team_id"], "team_id")
    if "team_member_mappings" in patch:
        changes["team_member_mappings"] = _mappings(patch["team_member_mappings"])
    if "requires_arn" in patch:
        changes["requires_arn"] = _flag(patch["requires_arn"])

    merged = replace(task, **changes)
    # A task that never ran follows its start date.
    if "start_date" in changes and "next_occurrence" not in changes and not task.completion_history:
        merged = replace(merged, next_occurrence=merged.start_date)

    validate_task_shape(
        title=merged.title,
        description=merged.description,
        start_date=merged.start_date,
        end_date=merged.end_date,
        next_occurrence=merged.next_occurrence,
        mappings=merged.team_member_mappings,
    )
    return merged
