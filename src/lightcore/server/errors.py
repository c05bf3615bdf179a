"""Error rendering at the application boundary.

Only ``HTTPError`` becomes a response. Everything else is logged and
re-raised for the server to deal with.
"""

import logging
from http import HTTPStatus

from lightcore.errors import HTTPError
from lightcore.http.request import Request
from lightcore.http.response import Response

logger = logging.getLogger("lightcore.server")


def http_error_response(exc: HTTPError, request: Request) -> Response:
    """Render an HTTPError as ``{"error": detail}`` with its status and headers."""
    logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)
    detail = exc.detail or _phrase(exc.status)
    response = Response.error(detail, exc.status)
    for name, value in exc.headers:
        response.set_header(name, value)
    return response


def log_internal_error(request: Request) -> None:
    """Log the exception being handled; the caller re-raises it."""
    logger.exception("500 %s %s", request.method, request.path)


def _phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"Error {status}"
