from __future__ import annotations

from typing import Protocol


class ClientDirectory(Protocol):
    """Read access to client reference data (CRUD lives elsewhere)."""

    def name_for_client(self, client_id: str) -> str:
        """Raises NotFoundError for an unknown client."""

        raise NotImplementedError
