"""HTTP response with fluent setters and a single terminal ``send()``.

Build a response with a factory (``Response.json()``, ``.html()``,
``.redirect()``, ...) or the constructor, adjust it with chained
``set_*()`` calls, then emit it once through a transport.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from lightcore.errors import ResponseAlreadySent
from lightcore.server.sender import Transport, body_allowed

HTML = "text/html; charset=utf-8"
JSON = "application/json; charset=utf-8"
TEXT = "text/plain; charset=utf-8"
XML = "application/xml; charset=utf-8"


def _check_status(status: int) -> int:
    """Reject anything that is not a known HTTP status code."""
    try:
        return HTTPStatus(int(status)).value
    except ValueError:
        msg = f"Invalid HTTP status code: {status!r}"
        raise ValueError(msg) from None


class Response:
    """An HTTP response: content, status code and ordered headers.

    Setters return the response itself so calls can be chained::

        Response("created").set_status(201).set_header("Location", "/users/7")

    Header names keep the casing they were set with; lookups, replacement
    and removal are case-insensitive.
    """

    __slots__ = ("_content", "_headers", "_status")

    def __init__(
        self,
        content: str | bytes = b"",
        status: int = HTTPStatus.OK,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._content = b""
        self._status = 200
        self._headers: dict[str, tuple[str, str]] = {}
        self.set_content(content)
        self.set_status(status)
        if headers:
            self.set_headers(headers)

    # -- Factories --

    @classmethod
    def json(cls, data: Any, status: int = HTTPStatus.OK) -> Response:
        """A JSON response. Raises ``TypeError`` when *data* is not serializable."""
        try:
            body = json_module.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            msg = f"Failed to encode JSON: {exc}"
            raise TypeError(msg) from exc
        return cls(body, status, {"Content-Type": JSON})

    @classmethod
    def html(cls, content: str, status: int = HTTPStatus.OK) -> Response:
        return cls(content, status, {"Content-Type": HTML})

    @classmethod
    def text(cls, content: str, status: int = HTTPStatus.OK) -> Response:
        return cls(content, status, {"Content-Type": TEXT})

    @classmethod
    def xml(cls, content: str, status: int = HTTPStatus.OK) -> Response:
        return cls(content, status, {"Content-Type": XML})

    @classmethod
    def redirect(cls, url: str, status: int = HTTPStatus.FOUND) -> Response:
        return cls(b"", status, {"Location": url})

    @classmethod
    def not_found(cls, message: str = "Not Found") -> Response:
        return cls.json({"error": message}, HTTPStatus.NOT_FOUND)

    @classmethod
    def error(cls, message: str, status: int = HTTPStatus.INTERNAL_SERVER_ERROR) -> Response:
        return cls.json({"error": message}, status)

    # -- Fluent setters --

    def set_content(self, content: str | bytes) -> Response:
        self._content = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        return self

    def set_status(self, status: int) -> Response:
        """Set the status code. Raises ``ValueError`` for unknown codes."""
        self._status = _check_status(status)
        return self

    def set_header(self, name: str, value: str) -> Response:
        self._headers[name.lower()] = (name, str(value))
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Response:
        for name, value in headers.items():
            self.set_header(name, value)
        return self

    def remove_header(self, name: str) -> Response:
        self._headers.pop(name.lower(), None)
        return self

    # -- Accessors --

    @property
    def content(self) -> bytes:
        return self._content

    @property
    def text_content(self) -> str:
        """Content decoded as UTF-8."""
        return self._content.decode("utf-8", errors="replace")

    @property
    def status(self) -> int:
        return self._status

    @property
    def headers(self) -> dict[str, str]:
        """Headers in insertion order, with their original casing."""
        return dict(self._headers.values())

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def get_header(self, name: str, default: str | None = None) -> str | None:
        entry = self._headers.get(name.lower())
        return default if entry is None else entry[1]

    @property
    def content_length(self) -> int:
        return len(self._content)

    def is_successful(self) -> bool:
        return 200 <= self._status < 300

    def is_redirect(self) -> bool:
        return 300 <= self._status < 400

    def is_error(self) -> bool:
        return self._status >= 400

    # -- Emission --

    def send(self, transport: Transport) -> Response:
        """Emit status, headers and body through *transport*.

        ``Content-Length`` is added when absent and the body is non-empty.
        Raises ``ResponseAlreadySent`` if the transport has already
        emitted headers.
        """
        if transport.headers_sent:
            msg = "Headers already sent on this transport"
            raise ResponseAlreadySent(msg)

        if body_allowed(self._status) and self._content and not self.has_header("Content-Length"):
            self.set_header("Content-Length", str(self.content_length))

        transport.start(self._status, list(self._headers.values()))
        if body_allowed(self._status):
            transport.write(self._content)
        return self

    def __str__(self) -> str:
        header_lines = "\n".join(f"{name}: {value}" for name, value in self._headers.values())
        return f"HTTP/1.1 {self._status}\n{header_lines}\n\n{self.text_content}"

    def __repr__(self) -> str:
        return f"<Response {self._status} {len(self._content)} bytes>"
