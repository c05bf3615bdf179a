"""Lightcore exception hierarchy.

Shared across Container, Router, Request, Response and the App boundary so
every module raises and catches the same types.

Nothing in the core recovers from these. The App boundary is the only
place that turns an ``HTTPError`` into a response; everything else
propagates to the server.
"""

from dataclasses import dataclass


class LightcoreError(Exception):
    """Base for all lightcore-specific errors."""


class ConfigurationError(LightcoreError):
    """Raised when application or database configuration is invalid."""


@dataclass(frozen=True, slots=True)
class HTTPError(LightcoreError):
    """An error that maps directly to an HTTP status code.

    Raised by the router or by handlers. The App boundary catches these
    and renders them as a JSON error response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class RouteNotFound(HTTPError):  # noqa: N818
    """404 — no registered route matched the request method and path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class BindingNotFound(LightcoreError, LookupError):  # noqa: N818
    """Raised when resolving a container id that was never bound."""

    def __init__(self, service_id: object) -> None:
        self.service_id = service_id
        super().__init__(f"Container entry not found for: {_describe(service_id)}")


class InvalidRouteCallback(LightcoreError, TypeError):  # noqa: N818
    """Raised when a matched route's target is neither callable nor a controller reference."""


class RequestBodyTooLarge(LightcoreError):  # noqa: N818
    """Raised before parsing when the request body exceeds the size cap."""

    def __init__(self, size: int | None, limit: int) -> None:
        self.size = size
        self.limit = limit
        if size is None:
            msg = f"Request body too large (limit {limit} bytes)"
        else:
            msg = f"Request body too large: {size} bytes (limit {limit} bytes)"
        super().__init__(msg)


class ResponseAlreadySent(LightcoreError, RuntimeError):  # noqa: N818
    """Raised when a response is emitted on a transport that already sent headers."""


def _describe(service_id: object) -> str:
    if isinstance(service_id, type):
        return f"{service_id.__module__}.{service_id.__qualname__}"
    return str(service_id)


class ValidationError(LightcoreError):
    """A field failed one of its declared validation rules.

    Carries the field name, the rule token that failed (e.g. ``"min:3"``)
    and the rule's message.
    """

    def __init__(self, field: str, rule: str, message: str) -> None:
        self.field = field
        self.rule = rule
        self.message = message
        super().__init__(f"Validation failed for {field!r} ({rule}): {message}")


class UnknownValidationRule(LightcoreError, LookupError):  # noqa: N818
    """A rule string named a rule that is not registered, or gave it a bad argument."""

    def __init__(self, field: str, rule: str, reason: str = "") -> None:
        self.field = field
        self.rule = rule
        msg = f"Unknown validation rule {rule!r} for parameter {field!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
