"""Response transports — where an emitted Response ends up.

A transport receives exactly one status line and header set, followed by
body bytes. Once headers are out, ``headers_sent`` is true and any
further ``Response.send()`` on the same transport is rejected.

- ``WSGITransport`` wraps a WSGI ``start_response`` callable.
- ``BufferedTransport`` records everything in memory (ASGI adapter,
  test client, debugging).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from http import HTTPStatus
from typing import Any, Protocol

logger = logging.getLogger("lightcore.server")

StartResponse = Callable[..., Any]


def status_line(status: int) -> str:
    """``200`` -> ``"200 OK"``. Unknown codes get an empty reason phrase."""
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return f"{status} "


def body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


class Transport(Protocol):
    """The emission target of ``Response.send()``."""

    @property
    def headers_sent(self) -> bool: ...

    def start(self, status: int, headers: Sequence[tuple[str, str]]) -> None: ...

    def write(self, data: bytes) -> None: ...


class BufferedTransport:
    """Collects the emitted status, headers and body in memory."""

    __slots__ = ("_chunks", "headers", "status")

    def __init__(self) -> None:
        self.status: int | None = None
        self.headers: list[tuple[str, str]] = []
        self._chunks: list[bytes] = []

    @property
    def headers_sent(self) -> bool:
        return self.status is not None

    def start(self, status: int, headers: Sequence[tuple[str, str]]) -> None:
        self.status = status
        self.headers = list(headers)

    def write(self, data: bytes) -> None:
        if data:
            self._chunks.append(data)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def header(self, name: str) -> str | None:
        """First emitted header value named *name* (case-insensitive)."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key.lower() == name_lower:
                return value
        return None


class WSGITransport:
    """Emits through a WSGI ``start_response`` callable.

    The body chunks written are exposed via ``chunks`` for the WSGI app
    to return as its response iterable.
    """

    __slots__ = ("_headers_sent", "_start_response", "chunks")

    def __init__(self, start_response: StartResponse) -> None:
        self._start_response = start_response
        self._headers_sent = False
        self.chunks: list[bytes] = []

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    def start(self, status: int, headers: Sequence[tuple[str, str]]) -> None:
        self._start_response(status_line(status), [(str(k), str(v)) for k, v in headers])
        self._headers_sent = True

    def write(self, data: bytes) -> None:
        if data:
            self.chunks.append(data)
