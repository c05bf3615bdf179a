"""Database connection with lazy connect and driver dispatch.

Supports SQLite (stdlib ``sqlite3``) and MySQL (``PyMySQL``, installed
with the ``mysql`` extra). SQL is written with ``?`` placeholders; the
connection rewrites them for drivers that expect ``%s``.

Usage::

    conn = Connection(DatabaseConfig(driver="sqlite", name="app.db"))
    conn.execute("INSERT INTO users (name) VALUES (?)", ["Alice"])
    rows = conn.fetch_all("SELECT * FROM users WHERE name = ?", ["Alice"])
    conn.disconnect()

Nothing connects until the first statement runs. A failed connect
raises ``DatabaseConnectionError``; a failed statement raises
``SqlExecutionError``. Neither is retried.

Each thread opens its own driver connection, so an SQLite ``:memory:``
database is private to the thread that created it.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Sequence
from typing import Any

from lightcore.config import DatabaseConfig
from lightcore.data.errors import (
    DatabaseConnectionError,
    DataError,
    DriverNotInstalledError,
    SqlExecutionError,
)

logger = logging.getLogger("lightcore.data")

SUPPORTED_DRIVERS = frozenset({"sqlite", "mysql"})


class Connection:
    """Lazily-opened database access, one driver connection per thread.

    Statements auto-commit. Each thread that runs a statement gets its own
    driver connection, so worker threads (the ASGI adapter) never share a
    socket or a cursor. ``release()`` closes the calling thread's
    connection at the end of a request; ``disconnect()`` closes them all.
    """

    __slots__ = ("_config", "_local", "_lock", "_open")

    def __init__(self, config: DatabaseConfig) -> None:
        if config.driver not in SUPPORTED_DRIVERS:
            supported = ", ".join(sorted(SUPPORTED_DRIVERS))
            msg = f"Unsupported database driver {config.driver!r}. Supported: {supported}"
            raise DataError(msg)
        self._config = config
        self._local = threading.local()
        self._lock = threading.Lock()
        self._open: list[Any] = []

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def driver(self) -> str:
        return self._config.driver

    @property
    def connected(self) -> bool:
        """True if the calling thread holds an open driver connection."""
        return getattr(self._local, "conn", None) is not None

    # -- Lifecycle --

    def connect(self) -> Any:
        """Open the calling thread's connection if needed and return it.

        Called automatically on first use. Call explicitly to fail fast.
        """
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = _connect(self._config)
            self._local.conn = conn
            with self._lock:
                self._open.append(conn)
            logger.debug("connected to %s database %r", self.driver, self._config.name)
        return conn

    def release(self) -> None:
        """Close the calling thread's connection, if it has one."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            return
        self._local.conn = None
        with self._lock:
            if conn in self._open:
                self._open.remove(conn)
        conn.close()
        logger.debug("released %s database %r", self.driver, self._config.name)

    def disconnect(self) -> None:
        """Close every thread's connection. A later statement reconnects."""
        with self._lock:
            conns, self._open = self._open, []
            self._local = threading.local()
        for conn in conns:
            conn.close()
        if conns:
            logger.debug("disconnected from %s database %r", self.driver, self._config.name)

    def __enter__(self) -> Connection:
        self.connect()
        return self

    def __exit__(self, *_: Any) -> None:
        self.disconnect()

    # -- Echo / query logging --

    def _log_query(self, sql: str, params: Sequence[Any], elapsed: float) -> None:
        """Log a statement on ``lightcore.data`` when echo is enabled."""
        if not self._config.echo:
            return
        logger.info("%6.1fms  %s  params=%r", elapsed * 1000, sql, tuple(params))

    # -- Execution --

    def query(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Run a statement and return the driver cursor.

        This is the single execution primitive; everything else goes
        through it.
        """
        conn = self.connect()
        statement = _prepare(self.driver, sql)
        t0 = time.perf_counter()
        try:
            cursor = conn.cursor()
            cursor.execute(statement, tuple(params))
        except Exception as exc:
            msg = f"SQL execution failed: {exc}"
            raise SqlExecutionError(msg, sql, params) from exc
        finally:
            self._log_query(sql, params, time.perf_counter() - t0)
        if cursor.lastrowid:
            self._local.last_insert_id = cursor.lastrowid
        return cursor

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement (INSERT/UPDATE/DELETE) and return rows affected."""
        cursor = self.query(sql, params)
        try:
            return max(cursor.rowcount, 0)
        finally:
            cursor.close()

    def execute_insert(self, sql: str, params: Sequence[Any] = ()) -> tuple[int, int | None]:
        """Run an INSERT; return rows affected and the id generated by that statement."""
        cursor = self.query(sql, params)
        try:
            return max(cursor.rowcount, 0), cursor.lastrowid or None
        finally:
            cursor.close()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return every row as a column -> value dict."""
        cursor = self.query(sql, params)
        try:
            return [_row_dict(cursor, row) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Run a query and return the first row, or ``None``."""
        cursor = self.query(sql, params)
        try:
            row = cursor.fetchone()
            return None if row is None else _row_dict(cursor, row)
        finally:
            cursor.close()

    def fetch_val(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """First column of the first row (COUNT, MAX, ...), or ``None``."""
        row = self.fetch_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()), None)

    def last_insert_id(self) -> int | None:
        """Id generated by the calling thread's most recent INSERT."""
        return getattr(self._local, "last_insert_id", None)

    def __repr__(self) -> str:
        state = "open" if self.connected else "closed"
        return f"<Connection {self._config.dsn} {state}>"


# =============================================================================
# Driver dispatch
# =============================================================================
# Plain functions switched on the driver name; no driver class hierarchy.


def _connect(config: DatabaseConfig) -> Any:
    if config.driver == "sqlite":
        return _connect_sqlite(config)
    return _connect_mysql(config)


def _connect_sqlite(config: DatabaseConfig) -> Any:
    import sqlite3

    if not config.name:
        msg = "SQLite database path is empty"
        raise DatabaseConnectionError(msg)
    try:
        # disconnect() may close it from a thread other than the opener
        return sqlite3.connect(config.name, check_same_thread=False, autocommit=True)
    except sqlite3.Error as exc:
        msg = f"Could not open SQLite database {config.name!r}: {exc}"
        raise DatabaseConnectionError(msg) from exc


def _connect_mysql(config: DatabaseConfig) -> Any:
    try:
        import pymysql
    except ImportError:
        msg = (
            "lightcore.data requires 'PyMySQL' for MySQL databases. "
            "Install it with: pip install lightcore[mysql]"
        )
        raise DriverNotInstalledError(msg) from None

    try:
        return pymysql.connect(
            host=config.host,
            user=config.user,
            password=config.password,
            database=config.name,
            port=config.port or 3306,
            charset="utf8mb4",
            autocommit=True,
        )
    except pymysql.MySQLError as exc:
        msg = f"Could not connect to {config.dsn}: {exc}"
        raise DatabaseConnectionError(msg) from exc


# Quoted literals and identifiers are copied through; only bare ? and %
# outside them are rewritten.
_MYSQL_TOKEN = re.compile(r"""'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*"|`[^`]*`|[?%]""")


def _prepare(driver: str, sql: str) -> str:
    """Rewrite ``?`` placeholders to the driver's paramstyle.

    For MySQL, ``?`` becomes ``%s`` and every literal ``%`` is doubled,
    since PyMySQL always interpolates with ``%``. A ``?`` inside a quoted
    string stays a literal question mark.
    """
    if driver != "mysql":
        return sql
    return _MYSQL_TOKEN.sub(_rewrite_mysql_token, sql)


def _rewrite_mysql_token(match: re.Match[str]) -> str:
    token = match.group()
    if token == "?":
        return "%s"
    return token.replace("%", "%%")


def _row_dict(cursor: Any, row: Any) -> dict[str, Any]:
    columns = [desc[0] for desc in cursor.description]
    return dict(zip(columns, row, strict=True))
