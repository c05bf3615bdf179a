"""ASGI adapter — serve the synchronous kernel under an async server.

The request body is collected (and capped) on the event loop; the
application itself runs in a worker thread via ``anyio.to_thread``, so
handlers and database calls never block the loop::

    from lightcore.asgi import ASGIApp

    asgi_app = ASGIApp(app)   # uvicorn module:asgi_app

Lifespan messages are acknowledged. On shutdown the application's
database connection is closed.
"""

import io
import logging
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

import anyio.to_thread

from lightcore.app import App
from lightcore.errors import RequestBodyTooLarge
from lightcore.http.request import Request
from lightcore.server.sender import BufferedTransport

logger = logging.getLogger("lightcore.server")

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


class ASGIApp:
    """ASGI 3 callable wrapping an ``App``."""

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        limit = self.app.config.max_body_size
        body = await read_body(scope, receive, limit)
        if body is None:
            logger.debug("client disconnected mid-body: %s %s", scope.get("method"), scope.get("path"))
            return
        environ = build_environ(scope, body)
        request = Request.from_environ(environ, max_body_size=limit, rules=self.app.rules)
        response = await anyio.to_thread.run_sync(self.app.respond, request)

        transport = BufferedTransport()
        response.send(transport)
        await send(
            {
                "type": "http.response.start",
                "status": transport.status,
                "headers": [
                    (name.lower().encode("latin-1"), value.encode("latin-1"))
                    for name, value in transport.headers
                ],
            }
        )
        await send({"type": "http.response.body", "body": transport.body})

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    await anyio.to_thread.run_sync(self.app.close)
                except Exception as exc:
                    logger.exception("error while closing the application")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return


async def read_body(scope: Scope, receive: Receive, limit: int) -> bytes | None:
    """Collect ``http.request`` chunks, failing as soon as *limit* is passed.

    A declared ``Content-Length`` above the limit fails before anything
    is received. Returns ``None`` when the client disconnects before the
    body is complete.
    """
    declared = _declared_length(scope)
    if declared is not None and declared > limit:
        raise RequestBodyTooLarge(declared, limit)

    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return None
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise RequestBodyTooLarge(None, limit)
        chunks.append(chunk)
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def build_environ(scope: Scope, body: bytes) -> dict[str, Any]:
    """Translate an ASGI HTTP scope into the environment a Request reads."""
    query_string = scope.get("query_string", b"").decode("latin-1")
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope["path"]
    server = scope.get("server") or ("localhost", 80)
    client = scope.get("client")

    environ: dict[str, Any] = {
        "REQUEST_METHOD": scope["method"],
        "SCRIPT_NAME": scope.get("root_path", ""),
        "PATH_INFO": scope["path"],
        "REQUEST_URI": f"{path}?{query_string}" if query_string else path,
        "QUERY_STRING": query_string,
        "SERVER_NAME": str(server[0]),
        "SERVER_PORT": str(server[1] or 80),
        "SERVER_PROTOCOL": f"HTTP/{scope.get('http_version', '1.1')}",
        "wsgi.url_scheme": scope.get("scheme", "http"),
        "wsgi.input": io.BytesIO(body),
        "CONTENT_LENGTH": str(len(body)),
    }
    if client:
        environ["REMOTE_ADDR"] = str(client[0])

    for raw_name, raw_value in scope.get("headers", ()):
        name = raw_name.decode("latin-1").upper().replace("-", "_")
        value = raw_value.decode("latin-1")
        if name == "CONTENT_LENGTH":
            continue
        key = name if name == "CONTENT_TYPE" else f"HTTP_{name}"
        # Repeated headers are joined, as CGI servers do
        environ[key] = f"{environ[key]},{value}" if key in environ else value
    return environ


def _declared_length(scope: Scope) -> int | None:
    for raw_name, raw_value in scope.get("headers", ()):
        if raw_name.lower() == b"content-length":
            try:
                return int(raw_value)
            except ValueError:
                return None
    return None
