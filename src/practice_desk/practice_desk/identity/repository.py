from __future__ import annotations

from typing import Protocol, Sequence


class ProfileDirectory(Protocol):
    """Profile documents (``users`` collection)."""

    def ids_for_email(self, email: str) -> Sequence[str]:
        raise NotImplementedError


class LegacyEmployeeDirectory(Protocol):
    """Older employee records (``employees`` collection) that predate profiles."""

    def ids_for_email(self, email: str) -> Sequence[str]:
        raise NotImplementedError
