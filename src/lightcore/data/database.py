"""Database facade: the entry point handlers use for queries.

Usage::

    db = Database(Connection(config))
    users = db.table("users").where("active", "=", 1).get()
    count = db.fetch_val("SELECT COUNT(*) FROM users")

Registered in the application's container by ``DatabaseServiceProvider``,
so controllers resolve it instead of reaching for a global.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from lightcore.config import DatabaseConfig
from lightcore.data.connection import Connection
from lightcore.data.query import QueryBuilder


class Database:
    """Hands out query builders bound to one connection."""

    __slots__ = ("_connection",)

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        return cls(Connection(config))

    @property
    def connection(self) -> Connection:
        return self._connection

    def table(self, name: str) -> QueryBuilder:
        """A fresh builder for *name*. Builders are single-use."""
        return QueryBuilder(self._connection, name)

    # -- Raw SQL --

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self._connection.execute(sql, params)

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        return self._connection.fetch_all(sql, params)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        return self._connection.fetch_one(sql, params)

    def fetch_val(self, sql: str, params: Sequence[Any] = ()) -> Any:
        return self._connection.fetch_val(sql, params)

    def close(self) -> None:
        self._connection.disconnect()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
