from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import CompletionPayload, CompletionRecord


class CompletionRepository(Protocol):
    def get(self, *, task_id: str, client_id: str, period_key: str) -> Optional[CompletionRecord]:
        raise NotImplementedError

    def upsert(self, *, task_id: str, client_id: str, period_key: str, payload: CompletionPayload) -> CompletionRecord:
        """Insert or update in place; (task_id, client_id, period_key) is unique."""

        raise NotImplementedError

    def delete(self, *, task_id: str, client_id: str, period_key: str) -> bool:
        raise NotImplementedError

    def list_by_task(self, task_id: str) -> Sequence[CompletionRecord]:
        """Ordered by period_key ascending."""

        raise NotImplementedError

    def list_by_client_and_task(self, client_id: str, task_id: str) -> Sequence[CompletionRecord]:
        raise NotImplementedError
