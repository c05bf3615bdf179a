"""Tests for lightcore.data.connection and lightcore.data.database."""

import logging
import sqlite3
import threading

import pytest

from lightcore.config import DatabaseConfig
from lightcore.data import (
    Connection,
    Database,
    DatabaseConnectionError,
    DataError,
    SqlExecutionError,
)
from lightcore.data.connection import _prepare


class TestLifecycle:
    def test_lazy_connect(self, sqlite_config: DatabaseConfig) -> None:
        conn = Connection(sqlite_config)
        assert not conn.connected
        assert "closed" in repr(conn)
        conn.fetch_val("SELECT 1")
        assert conn.connected
        conn.disconnect()
        assert not conn.connected

    def test_disconnect_when_closed_is_noop(self, sqlite_config: DatabaseConfig) -> None:
        Connection(sqlite_config).disconnect()

    def test_reconnects_after_disconnect(self, connection: Connection) -> None:
        connection.execute("INSERT INTO users (name) VALUES (?)", ["Ada"])
        connection.disconnect()
        assert connection.fetch_val("SELECT name FROM users") == "Ada"

    def test_context_manager(self, sqlite_config: DatabaseConfig) -> None:
        with Connection(sqlite_config) as conn:
            assert conn.connected
        assert not conn.connected

    def test_properties(self, sqlite_config: DatabaseConfig) -> None:
        conn = Connection(sqlite_config)
        assert conn.driver == "sqlite"
        assert conn.config is sqlite_config


class TestErrors:
    def test_unsupported_driver(self) -> None:
        with pytest.raises(DataError, match="Unsupported database driver"):
            Connection(DatabaseConfig(driver="oracle", name="x"))

    def test_empty_sqlite_path(self) -> None:
        conn = Connection(DatabaseConfig(driver="sqlite", name=""))
        with pytest.raises(DatabaseConnectionError, match="empty"):
            conn.connect()

    def test_unopenable_sqlite_path(self, tmp_path) -> None:
        conn = Connection(DatabaseConfig(driver="sqlite", name=str(tmp_path / "missing" / "x.db")))
        with pytest.raises(DatabaseConnectionError) as exc_info:
            conn.connect()
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_bad_sql(self, connection: Connection) -> None:
        with pytest.raises(SqlExecutionError) as exc_info:
            connection.fetch_all("SELECT * FROM nowhere WHERE id = ?", [1])
        err = exc_info.value
        assert err.sql == "SELECT * FROM nowhere WHERE id = ?"
        assert err.params == (1,)
        assert isinstance(err.__cause__, sqlite3.Error)

    def test_constraint_violation(self, connection: Connection) -> None:
        with pytest.raises(SqlExecutionError):
            connection.execute("INSERT INTO users (email) VALUES (?)", ["no-name@example.com"])


class TestStatements:
    def test_execute_returns_rowcount(self, connection: Connection) -> None:
        assert connection.execute("INSERT INTO users (name) VALUES (?), (?)", ["a", "b"]) == 2
        assert connection.execute("UPDATE users SET age = ?", [1]) == 2
        assert connection.execute("DELETE FROM users WHERE id = ?", [99]) == 0

    def test_fetch_shapes(self, connection: Connection) -> None:
        connection.execute("INSERT INTO users (name, age) VALUES (?, ?)", ["Ada", 36])
        assert connection.fetch_all("SELECT name, age FROM users") == [{"name": "Ada", "age": 36}]
        assert connection.fetch_one("SELECT name FROM users") == {"name": "Ada"}
        assert connection.fetch_one("SELECT name FROM users WHERE id = 99") is None
        assert connection.fetch_val("SELECT COUNT(*) FROM users") == 1
        assert connection.fetch_val("SELECT name FROM users WHERE id = 99") is None

    def test_last_insert_id(self, connection: Connection) -> None:
        assert connection.last_insert_id() is None
        connection.execute("INSERT INTO users (name) VALUES (?)", ["a"])
        connection.execute("INSERT INTO users (name) VALUES (?)", ["b"])
        assert connection.last_insert_id() == 2
        connection.fetch_all("SELECT * FROM users")
        assert connection.last_insert_id() == 2

    def test_execute_insert_returns_statement_id(self, connection: Connection) -> None:
        assert connection.execute_insert("INSERT INTO users (name) VALUES (?)", ["a"]) == (1, 1)
        assert connection.execute_insert("INSERT INTO users (name) VALUES (?)", ["b"]) == (1, 2)


class TestThreads:
    def test_each_thread_gets_its_own_driver_connection(self, connection: Connection) -> None:
        barrier = threading.Barrier(2)
        seen: list[object] = []

        def work() -> None:
            seen.append(connection.connect())
            barrier.wait(timeout=5)
            connection.fetch_val("SELECT 1")

        threads = [threading.Thread(target=work) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(seen) == 2
        assert seen[0] is not seen[1]

    def test_last_insert_id_is_per_thread(self, connection: Connection) -> None:
        first_inserted = threading.Event()
        second_inserted = threading.Event()
        ids: dict[str, int | None] = {}

        def first() -> None:
            connection.execute("INSERT INTO users (name) VALUES (?)", ["a"])
            first_inserted.set()
            second_inserted.wait(timeout=5)
            ids["first"] = connection.last_insert_id()

        def second() -> None:
            first_inserted.wait(timeout=5)
            connection.execute("INSERT INTO users (name) VALUES (?)", ["b"])
            ids["second"] = connection.last_insert_id()
            second_inserted.set()

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert ids == {"first": 1, "second": 2}

    def test_release_closes_only_calling_thread(self, connection: Connection) -> None:
        connection.connect()
        released: list[bool] = []

        def work() -> None:
            connection.fetch_val("SELECT 1")
            connection.release()
            released.append(connection.connected)

        t = threading.Thread(target=work)
        t.start()
        t.join()
        assert released == [False]
        assert connection.connected

    def test_disconnect_closes_every_thread(self, connection: Connection) -> None:
        opened: list[sqlite3.Connection] = []

        def work() -> None:
            opened.append(connection.connect())

        t = threading.Thread(target=work)
        t.start()
        t.join()
        connection.disconnect()
        assert not connection.connected
        with pytest.raises(sqlite3.ProgrammingError):
            opened[0].execute("SELECT 1")


class TestEcho:
    def test_echo_logs_statements(self, tmp_path, caplog: pytest.LogCaptureFixture) -> None:
        conn = Connection(DatabaseConfig(driver="sqlite", name=str(tmp_path / "e.db"), echo=True))
        with caplog.at_level(logging.INFO, logger="lightcore.data"):
            conn.fetch_val("SELECT ?", [5])
        conn.disconnect()
        assert "SELECT ?" in caplog.text
        assert "params=(5,)" in caplog.text

    def test_failed_statement_still_logged(self, tmp_path, caplog: pytest.LogCaptureFixture) -> None:
        conn = Connection(DatabaseConfig(driver="sqlite", name=str(tmp_path / "e.db"), echo=True))
        with caplog.at_level(logging.INFO, logger="lightcore.data"), pytest.raises(SqlExecutionError):
            conn.execute("NOT SQL")
        conn.disconnect()
        assert "NOT SQL" in caplog.text

    def test_silent_without_echo(self, connection: Connection, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="lightcore.data"):
            connection.fetch_val("SELECT 1")
        assert "SELECT 1" not in caplog.text


class TestPlaceholders:
    def test_sqlite_unchanged(self) -> None:
        assert _prepare("sqlite", "SELECT * FROM t WHERE a = ?") == "SELECT * FROM t WHERE a = ?"

    def test_mysql_rewritten(self) -> None:
        assert _prepare("mysql", "SELECT * FROM t WHERE a LIKE '5%' AND b = ?") == (
            "SELECT * FROM t WHERE a LIKE '5%%' AND b = %s"
        )

    def test_mysql_leaves_quoted_question_marks(self) -> None:
        sql = "SELECT '?' AS q, \"a?\" AS r FROM `t?` WHERE b = ? AND c LIKE '5%'"
        assert _prepare("mysql", sql) == (
            "SELECT '?' AS q, \"a?\" AS r FROM `t?` WHERE b = %s AND c LIKE '5%%'"
        )

    def test_mysql_escaped_quotes_inside_literal(self) -> None:
        assert _prepare("mysql", "SELECT 'it''s ?', 'a\\'?' FROM t WHERE x = ?") == (
            "SELECT 'it''s ?', 'a\\'?' FROM t WHERE x = %s"
        )

    def test_mysql_bare_percent_doubled(self) -> None:
        assert _prepare("mysql", "SELECT 10 % 3, ?") == "SELECT 10 %% 3, %s"


class TestMySQL:
    def test_connection_failure_is_wrapped(self) -> None:
        pytest.importorskip("pymysql")
        config = DatabaseConfig(driver="mysql", host="127.0.0.1", name="x", port=1)
        with pytest.raises(DatabaseConnectionError, match="Could not connect"):
            Connection(config).connect()


class TestDatabase:
    def test_from_config(self, sqlite_config: DatabaseConfig) -> None:
        db = Database.from_config(sqlite_config)
        assert db.connection.config is sqlite_config

    def test_raw_helpers(self, db: Database) -> None:
        assert db.execute("INSERT INTO users (name) VALUES (?)", ["Ada"]) == 1
        assert db.fetch_all("SELECT name FROM users") == [{"name": "Ada"}]
        assert db.fetch_one("SELECT name FROM users") == {"name": "Ada"}
        assert db.fetch_val("SELECT COUNT(*) FROM users") == 1

    def test_context_manager_closes(self, sqlite_config: DatabaseConfig) -> None:
        with Database.from_config(sqlite_config) as db:
            db.fetch_val("SELECT 1")
            assert db.connection.connected
        assert not db.connection.connected
