from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    ``fields`` maps a field name to the messages for that field so the API
    layer can report field-level detail.
    """

    def __init__(self, message: str, fields: Optional[dict[str, list[str]]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})

    @classmethod
    def for_field(cls, field_name: str, message: str) -> "ValidationError":
        return cls(message, {field_name: [message]})


class AuthenticationError(DomainError):
    """Raised when no verified principal is available."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced task/client/completion record does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class DependencyError(DomainError):
    """Raised when an external collaborator (store, team or client service) fails.

    Always retryable from the caller's point of view.
    """

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator
