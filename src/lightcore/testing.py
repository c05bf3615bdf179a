"""Synchronous test client for lightcore applications.

Drives the WSGI entry point in-process, so requests go through exactly
the code a server would run. Returns the same ``Response`` type as
production, rebuilt from what the application emitted.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from lightcore.app import App
from lightcore.http.forms import FORM_URLENCODED
from lightcore.http.request import make_environ
from lightcore.http.response import Response
from lightcore.server.sender import BufferedTransport


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """Test client for lightcore applications.

    Usage::

        client = TestClient(app)
        response = client.get("/users/42")
        assert response.status == 200
        assert client.json(response) == {"id": "42"}

    Exceptions other than ``HTTPError`` propagate out of the request call,
    as they would to a server.
    """

    __slots__ = ("app",)

    def __init__(self, app: App) -> None:
        self.app = app

    def __enter__(self) -> TestClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.app.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | str = b"",
        data: Mapping[str, Any] | None = None,
        json: Any = None,
        environ: Mapping[str, Any] | None = None,
    ) -> Response:
        """Send a request through the WSGI interface.

        *data* is sent url-encoded, *json* as ``application/json``;
        explicit *headers* win over the implied Content-Type. Extra
        *environ* keys are merged last.
        """
        extra_headers: dict[str, str] = {}
        if json is not None:
            body = json_module.dumps(json)
            extra_headers["Content-Type"] = "application/json"
        elif data is not None:
            body = urlencode(data, doseq=True)
            extra_headers["Content-Type"] = FORM_URLENCODED

        env = make_environ(method, path, {**extra_headers, **(headers or {})}, body)
        if environ:
            env.update(environ)

        transport = BufferedTransport()
        chunks = self.app(env, _recorder(transport))
        return Response(b"".join(chunks), transport.status or 200, dict(transport.headers))

    def get(self, path: str, *, headers: Mapping[str, str] | None = None) -> Response:
        """Send a GET request."""
        return self.request("GET", path, headers=headers)

    def post(
        self,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes | str = b"",
        data: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Response:
        """Send a POST request."""
        return self.request("POST", path, headers=headers, body=body, data=data, json=json)

    def put(self, path: str, *, headers: Mapping[str, str] | None = None, json: Any = None) -> Response:
        """Send a PUT request."""
        return self.request("PUT", path, headers=headers, json=json)

    def patch(self, path: str, *, headers: Mapping[str, str] | None = None, json: Any = None) -> Response:
        """Send a PATCH request."""
        return self.request("PATCH", path, headers=headers, json=json)

    def delete(self, path: str, *, headers: Mapping[str, str] | None = None) -> Response:
        """Send a DELETE request."""
        return self.request("DELETE", path, headers=headers)

    @staticmethod
    def json(response: Response) -> Any:
        """Decode a response body as JSON."""
        return json_module.loads(response.content)


def _recorder(transport: BufferedTransport) -> Any:
    """A WSGI ``start_response`` that records status and headers."""

    def start_response(status: str, headers: list[tuple[str, str]], exc_info: Any = None) -> Any:
        transport.start(int(status.split(" ", 1)[0]), headers)
        return transport.write

    return start_response
