"""Application and database configuration.

Both configs are frozen dataclasses — immutable after creation,
IDE-autocompletable, no string-key dict lookups inside the core.

Reading ``.env`` files is left to the caller; ``from_env()`` accepts any
flat string mapping (``os.environ`` by default).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from lightcore.errors import ConfigurationError

# 5 MiB
DEFAULT_MAX_BODY_SIZE = 5 * 1024 * 1024

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _first(env: Mapping[str, str], *keys: str, default: str = "") -> str:
    """Return the value of the first key present in *env*."""
    for key in keys:
        value = env.get(key)
        if value is not None:
            return value
    return default


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection settings.

    The core needs four values (host, database name, user, password) to
    open a connection described by a DSN of the form
    ``driver:host=<host>;dbname=<name>``. SQLite uses the name as a file
    path (``sqlite:<path>``).
    """

    driver: str = "mysql"
    host: str = "localhost"
    name: str = ""
    user: str = ""
    password: str = ""
    port: int | None = None
    echo: bool = False

    @property
    def dsn(self) -> str:
        """The connection string, without credentials."""
        if self.driver == "sqlite":
            return f"sqlite:{self.name}"
        dsn = f"{self.driver}:host={self.host};dbname={self.name}"
        if self.port is not None:
            dsn += f";port={self.port}"
        return dsn

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> DatabaseConfig:
        """Build a config from ``DB_*`` keys.

        Both naming schemes are accepted: ``DB_NAME``/``DB_USER``/``DB_PASS``
        and ``DB_DATABASE``/``DB_USERNAME``/``DB_PASSWORD``.

        Raises ``ConfigurationError`` when the database name is missing, or
        when the host is missing for a server driver.
        """
        env = os.environ if env is None else env
        driver = _first(env, "DB_DRIVER", default="mysql").lower()
        host = _first(env, "DB_HOST")
        name = _first(env, "DB_NAME", "DB_DATABASE")

        if not name:
            msg = "Database configuration requires DB_NAME (or DB_DATABASE)"
            raise ConfigurationError(msg)
        if driver != "sqlite" and not host:
            msg = "Database configuration requires DB_HOST"
            raise ConfigurationError(msg)

        port_value = _first(env, "DB_PORT")
        try:
            port = int(port_value) if port_value else None
        except ValueError:
            msg = f"DB_PORT must be an integer, got {port_value!r}"
            raise ConfigurationError(msg) from None

        return cls(
            driver=driver,
            host=host or "localhost",
            name=name,
            user=_first(env, "DB_USER", "DB_USERNAME"),
            password=_first(env, "DB_PASS", "DB_PASSWORD"),
            port=port,
            echo=_first(env, "DB_ECHO").lower() in _TRUTHY,
        )

    @classmethod
    def from_dsn(cls, dsn: str, *, user: str = "", password: str = "") -> DatabaseConfig:
        """Parse a ``driver:key=value;key=value`` connection string.

        ::

            DatabaseConfig.from_dsn("mysql:host=db;dbname=app", user="root")
            DatabaseConfig.from_dsn("sqlite:/var/data/app.db")
            DatabaseConfig.from_dsn("sqlite::memory:")
        """
        driver, sep, rest = dsn.partition(":")
        if not sep or not driver:
            msg = f"Invalid DSN {dsn!r}: expected 'driver:host=...;dbname=...'"
            raise ConfigurationError(msg)
        driver = driver.lower()

        if driver == "sqlite" and "=" not in rest:
            return cls(driver="sqlite", host="", name=rest)

        options: dict[str, str] = {}
        for part in rest.split(";"):
            if not part:
                continue
            key, eq, value = part.partition("=")
            if not eq:
                msg = f"Invalid DSN segment {part!r} in {dsn!r}"
                raise ConfigurationError(msg)
            options[key.strip().lower()] = value.strip()

        port = options.get("port")
        return cls(
            driver=driver,
            host=options.get("host", "localhost"),
            name=options.get("dbname", ""),
            user=user,
            password=password,
            port=int(port) if port else None,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(base_path="/lightcore", debug=True)
    """

    # Routing: prefix stripped from request paths before matching
    base_path: str = ""

    # Limits
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    # Server (``lightcore serve``)
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Database: no connection is registered when None
    database: DatabaseConfig | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> AppConfig:
        """Build a config from ``APP_*`` and ``DB_*`` keys."""
        env = os.environ if env is None else env
        database = None
        if _first(env, "DB_NAME", "DB_DATABASE"):
            database = DatabaseConfig.from_env(env)

        max_body = _first(env, "APP_MAX_BODY_SIZE")
        try:
            max_body_size = int(max_body) if max_body else DEFAULT_MAX_BODY_SIZE
        except ValueError:
            msg = f"APP_MAX_BODY_SIZE must be an integer, got {max_body!r}"
            raise ConfigurationError(msg) from None

        return cls(
            base_path=_first(env, "APP_BASE_PATH"),
            max_body_size=max_body_size,
            debug=_first(env, "APP_DEBUG").lower() in _TRUTHY,
            database=database,
        )
