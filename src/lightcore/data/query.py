"""Fluent SQL query builder for lightcore.data.

Accumulates clause state through chaining methods, renders parameterized
SQL with ``?`` placeholders and runs it through a ``Connection``.

Usage::

    rows = (
        db.table("users")
        .select("id", "name")
        .where("active", "=", 1)
        .or_where("role", "=", "admin")
        .order_by("name")
        .limit(20)
        .get()
    )

    db.table("users").where("id", "=", 7).update({"name": "Bea"})
    # UPDATE users SET name = ? WHERE id = ?    params: ["Bea", 7]

Transparency: ``.sql`` and ``.params`` (and ``compile_insert``,
``compile_update``, ``compile_delete``) show exactly what will run.

Builders are mutable and single-use: each terminal method consumes the
state accumulated so far, and nothing resets it. Take a fresh builder
from ``Database.table()`` per statement.

Column names, operators, table names and join conditions are written
into the SQL as given. Only values passed to ``where``/``insert``/
``update`` are bound as parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from lightcore.data.connection import Connection

Connector: TypeAlias = Literal["AND", "OR"]
JoinType: TypeAlias = Literal["INNER", "LEFT", "RIGHT"]

_DIRECTIONS = frozenset({"ASC", "DESC"})


@dataclass(frozen=True, slots=True)
class Where:
    """One predicate: ``<column> <operator> ?``, preceded by its connector."""

    connector: Connector
    column: str
    operator: str

    def render(self) -> str:
        return f"{self.column} {self.operator} ?"


@dataclass(frozen=True, slots=True)
class Join:
    """A join descriptor. The condition is raw SQL, never bound."""

    kind: JoinType
    table: str
    first: str
    operator: str
    second: str

    def render(self) -> str:
        keyword = "JOIN" if self.kind == "INNER" else f"{self.kind} JOIN"
        return f"{keyword} {self.table} ON {self.first} {self.operator} {self.second}"


class QueryBuilder:
    """Mutable clause accumulator for one table.

    ``_wheres[i]`` and ``_bindings[i]`` always correspond: every predicate
    contributes exactly one bound value, in append order.
    """

    __slots__ = ("_bindings", "_connection", "_joins", "_limit", "_orders", "_selects", "_table", "_wheres")

    def __init__(self, connection: Connection, table: str) -> None:
        self._connection = connection
        self._table = table
        self._selects: list[str] = []
        self._joins: list[Join] = []
        self._wheres: list[Where] = []
        self._bindings: list[Any] = []
        self._orders: list[tuple[str, str]] = []
        self._limit: int | None = None

    @property
    def table(self) -> str:
        return self._table

    # -- Building --

    def select(self, *columns: str) -> QueryBuilder:
        """Set the projection list. Without it, ``*`` is selected."""
        self._selects = list(columns)
        return self

    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """Add a predicate joined with ``AND``.

        ::

            .where("age", ">=", 18).where("active", "=", 1)
            # WHERE age >= ? AND active = ?
        """
        return self._add_where("AND", column, operator, value)

    def or_where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        """Add a predicate joined with ``OR``."""
        return self._add_where("OR", column, operator, value)

    def where_if(self, condition: object, column: str, operator: str, value: Any) -> QueryBuilder:
        """Add an ``AND`` predicate only if *condition* is truthy.

        ::

            db.table("posts").where_if(search, "title", "LIKE", f"%{search}%")
        """
        if condition:
            return self._add_where("AND", column, operator, value)
        return self

    def _add_where(self, connector: Connector, column: str, operator: str, value: Any) -> QueryBuilder:
        self._wheres.append(Where(connector, column, operator))
        self._bindings.append(value)
        return self

    def join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self._add_join("INNER", table, first, operator, second)

    def left_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self._add_join("LEFT", table, first, operator, second)

    def right_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        return self._add_join("RIGHT", table, first, operator, second)

    def _add_join(self, kind: JoinType, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        self._joins.append(Join(kind, table, first, operator, second))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        """Add an ``ORDER BY`` term. Direction is ``ASC`` or ``DESC`` (any case)."""
        normalized = direction.upper()
        if normalized not in _DIRECTIONS:
            msg = f"Invalid sort direction {direction!r}; expected ASC or DESC"
            raise ValueError(msg)
        self._orders.append((column, normalized))
        return self

    def limit(self, count: int) -> QueryBuilder:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            msg = f"LIMIT must be a non-negative integer, got {count!r}"
            raise ValueError(msg)
        self._limit = count
        return self

    # -- Compilation --

    def _where_clause(self) -> str:
        """``" WHERE a = ? OR b > ?"``, or ``""`` without predicates."""
        if not self._wheres:
            return ""
        parts = [self._wheres[0].render()]
        for where in self._wheres[1:]:
            parts.append(f"{where.connector} {where.render()}")
        return " WHERE " + " ".join(parts)

    @property
    def bindings(self) -> list[Any]:
        """The accumulated where-values, in predicate order (a copy)."""
        return list(self._bindings)

    @property
    def sql(self) -> str:
        """The SELECT statement this builder would run."""
        columns = ", ".join(self._selects) if self._selects else "*"
        query = f"SELECT {columns} FROM {self._table}"
        for join in self._joins:
            query += f" {join.render()}"
        query += self._where_clause()
        if self._orders:
            query += " ORDER BY " + ", ".join(f"{column} {direction}" for column, direction in self._orders)
        if self._limit is not None:
            query += f" LIMIT {self._limit}"
        return query

    @property
    def params(self) -> list[Any]:
        """Bound values for ``.sql``, in placeholder order."""
        return self.bindings

    def to_sql(self) -> str:
        """Render the SELECT form without executing it."""
        return self.sql

    def compile_insert(self, data: Mapping[str, Any]) -> tuple[str, list[Any]]:
        """``INSERT INTO <table> (<keys>) VALUES (?, ...)`` in *data*'s order."""
        if not data:
            msg = f"Cannot insert an empty row into {self._table}"
            raise ValueError(msg)
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        return f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})", list(data.values())

    def compile_update(self, data: Mapping[str, Any]) -> tuple[str, list[Any]]:
        """``UPDATE ... SET`` plus the accumulated WHERE.

        Data values are bound first, then the where-values, matching
        placeholder order left to right.
        """
        if not data:
            msg = f"Cannot update {self._table} without columns to set"
            raise ValueError(msg)
        assignments = ", ".join(f"{column} = ?" for column in data)
        sql = f"UPDATE {self._table} SET {assignments}{self._where_clause()}"
        return sql, [*data.values(), *self._bindings]

    def compile_delete(self) -> tuple[str, list[Any]]:
        """``DELETE FROM <table>`` plus the accumulated WHERE."""
        return f"DELETE FROM {self._table}{self._where_clause()}", self.bindings

    # -- Execution --

    def get(self) -> list[dict[str, Any]]:
        """Run the SELECT; rows come back as column -> value dicts, in order."""
        return self._connection.fetch_all(self.sql, self._bindings)

    def first(self) -> dict[str, Any] | None:
        """``limit(1)`` then ``get()``; the first row or ``None``."""
        rows = self.limit(1).get()
        return rows[0] if rows else None

    def insert(self, data: Mapping[str, Any]) -> bool:
        """Insert one row. True iff a row was affected."""
        sql, params = self.compile_insert(data)
        return self._connection.execute(sql, params) > 0

    def insert_get_id(self, data: Mapping[str, Any]) -> int | None:
        """Insert one row and return the id generated by that INSERT."""
        sql, params = self.compile_insert(data)
        affected, row_id = self._connection.execute_insert(sql, params)
        return row_id if affected else None

    def update(self, data: Mapping[str, Any]) -> bool:
        """Update the rows matched by the accumulated WHERE (all rows without one)."""
        sql, params = self.compile_update(data)
        return self._connection.execute(sql, params) > 0

    def delete(self) -> bool:
        """Delete the rows matched by the accumulated WHERE (all rows without one)."""
        sql, params = self.compile_delete()
        return self._connection.execute(sql, params) > 0

    def __repr__(self) -> str:
        return f"<QueryBuilder {self.sql!r} params={self._bindings!r}>"
