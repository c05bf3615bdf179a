"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from lightcore.http.response import Response


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``            -> pass through
    2. ``None``                -> 204, empty body
    3. ``str``                 -> 200, text/html
    4. ``bytes``               -> 200, application/octet-stream
    5. ``dict`` / ``list``     -> 200, application/json
    6. ``(value, int)``        -> negotiate value, override status
    7. ``(value, int, dict)``  -> negotiate value, override status + headers

    Raises ``TypeError`` for anything else.
    """
    match value:
        case Response():
            return value
        case None:
            return Response(b"", 204)
        case str():
            return Response.html(value)
        case bytes():
            return Response(value, headers={"Content-Type": "application/octet-stream"})
        case dict() | list():
            return Response.json(value)
        case (inner, int() as status):
            return negotiate(inner).set_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner).set_status(status).set_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return str, bytes, dict, list, None, or Response."
            )
            raise TypeError(msg)
