from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError.for_field(field_name, f"{field_name} is required")
    return value.strip()


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        raise ValidationError.for_field(field_name, f"{field_name} must be at most {max_len} characters")
    return value


def optional_text(value: Any, field_name: str = "value") -> Optional[str]:
    """Strip free text; numbers from JSON are accepted as their string form."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError.for_field(field_name, f"{field_name} must be text")
    v = str(value).strip()
    return v or None
