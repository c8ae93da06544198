from __future__ import annotations

from typing import Optional

from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Client
from .repository import ClientDirectory


class MySQLClientDirectory(ClientDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, client_id: str) -> Optional[Client]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT client_id, name FROM clients WHERE client_id=%s", (str(client_id),))
            r = fetchone(cur)
            return Client(client_id=str(r["client_id"]), name=r["name"] or "") if r else None

    def name_for_client(self, client_id: str) -> str:
        client = self.get_by_id(client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        return client.name

