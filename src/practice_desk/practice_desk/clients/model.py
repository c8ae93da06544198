from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Client:
    client_id: str
    name: str
