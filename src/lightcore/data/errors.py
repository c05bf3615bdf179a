"""Data layer error hierarchy."""

from collections.abc import Sequence
from typing import Any

from lightcore.errors import LightcoreError


class DataError(LightcoreError):
    """Base for all lightcore.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class DatabaseConnectionError(DataError):
    """Raised when a database connection cannot be established. Never retried."""


class SqlExecutionError(DataError):
    """Raised when the driver rejects a statement.

    The driver's exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, sql: str = "", params: Sequence[Any] = ()) -> None:
        self.sql = sql
        self.params = tuple(params)
        super().__init__(message)
