"""Synchronous database access for lightcore.

A lazily-opened ``Connection``, a ``Database`` facade handing out fluent
``QueryBuilder`` instances, and a small ``Model`` base. SQL in, dicts out.

Basic usage::

    from lightcore.config import DatabaseConfig
    from lightcore.data import Database

    db = Database.from_config(DatabaseConfig(driver="sqlite", name="app.db"))
    db.table("users").insert({"name": "Ada"})
    users = db.table("users").where("name", "=", "Ada").get()

SQLite works out of the box. MySQL requires ``PyMySQL``::

    pip install lightcore[mysql]
"""

from lightcore.data.connection import Connection
from lightcore.data.database import Database
from lightcore.data.errors import (
    DatabaseConnectionError,
    DataError,
    DriverNotInstalledError,
    SqlExecutionError,
)
from lightcore.data.model import Model
from lightcore.data.query import QueryBuilder

__all__ = [
    "Connection",
    "DataError",
    "Database",
    "DatabaseConnectionError",
    "DriverNotInstalledError",
    "Model",
    "QueryBuilder",
    "SqlExecutionError",
]
