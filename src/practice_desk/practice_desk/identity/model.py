from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError


@dataclass(frozen=True)
class Principal:
    """A verified caller: what the auth layer puts into the session."""

    subject_id: str
    email: str
    role: Role
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER

    @property
    def is_privileged(self) -> bool:
        return self.role in {Role.ADMIN, Role.MANAGER}

    @classmethod
    def from_session(cls, session: Mapping) -> "Principal":
        subject_id = session.get("user_id")
        if not subject_id:
            raise AuthenticationError("Not signed in")
        try:
            role = Role(str(session.get("role") or ""))
        except ValueError:
            raise AuthorizationError(f"Unknown role: {session.get('role')!r}")
        return cls(
            subject_id=str(subject_id),
            email=str(session.get("email") or ""),
            role=role,
            name=str(session.get("name") or ""),
        )


class IdentitySet:
    """Immutable set of every id known to refer to one principal.

    Used for matching only; writes always go through ``primary``.
    """

    __slots__ = ("_primary", "_ids")

    def __init__(self, primary: str, others: Iterable[str] = ()):
        self._primary = str(primary)
        self._ids = frozenset({self._primary, *(str(i) for i in others if i)})

    @property
    def primary(self) -> str:
        return self._primary

    def __contains__(self, item: object) -> bool:
        return item in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IdentitySet):
            return self._primary == other._primary and self._ids == other._ids
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._primary, self._ids))

    def __repr__(self) -> str:
        return f"IdentitySet(primary={self._primary!r}, ids={sorted(self._ids)!r})"

    def intersects(self, ids: Iterable[str]) -> bool:
        return any(i in self._ids for i in ids)

    def as_frozenset(self) -> frozenset[str]:
        return self._ids
