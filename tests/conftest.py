"""Shared fixtures: SQLite-backed database objects on a temporary file."""

import pytest

from lightcore.config import DatabaseConfig
from lightcore.data import Connection, Database

USERS_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    age INTEGER
)
"""

POSTS_SCHEMA = """
CREATE TABLE posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    title TEXT NOT NULL
)
"""


@pytest.fixture
def sqlite_config(tmp_path) -> DatabaseConfig:
    return DatabaseConfig(driver="sqlite", host="", name=str(tmp_path / "test.db"))


@pytest.fixture
def connection(sqlite_config):
    conn = Connection(sqlite_config)
    conn.execute(USERS_SCHEMA)
    conn.execute(POSTS_SCHEMA)
    yield conn
    conn.disconnect()


@pytest.fixture
def db(connection) -> Database:
    return Database(connection)
