"""Route definitions and path-pattern compilation.

A route is a frozen (method, path pattern, target) triple. Its pattern is
compiled once, at construction::

    "users/{id}"          -> ^users/([^/]+)$    names: ("id",)
    "posts/{post}/c/{c}"  -> ^posts/([^/]+)/c/([^/]+)$

Each ``{name}`` placeholder captures one path segment (one or more
non-slash characters). Everything else in the pattern matches literally.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING, TypeAlias

from lightcore.errors import ConfigurationError, InvalidRouteCallback

if TYPE_CHECKING:
    from lightcore.http.request import Request

logger = logging.getLogger("lightcore.routing")

# Any {...} token; names are validated separately so bad tokens fail loudly
_TOKEN_RE = re.compile(r"\{([^{}]*)\}")
_NAME_RE = re.compile(r"^[A-Za-z_]\w*$")
_SEGMENT = r"([^/]+)"


@dataclass(frozen=True, slots=True)
class ControllerRef:
    """A target naming a controller class and the method to call on it.

    The controller is created per request with no constructor arguments
    (or resolved through the application's container), and the method
    receives the Request as its only argument.
    """

    controller: type
    action: str

    def __str__(self) -> str:
        return f"{self.controller.__qualname__}.{self.action}"


ControllerResolver: TypeAlias = Callable[[type], Any]


def coerce_target(target: Any) -> Any:
    """Turn the ``(Controller, "method")`` shorthand into a ``ControllerRef``.

    Anything else is returned unchanged; invalid shapes are rejected when
    the route is handled.
    """
    if (
        isinstance(target, (tuple, list))
        and len(target) == 2
        and isinstance(target[0], type)
        and isinstance(target[1], str)
    ):
        return ControllerRef(target[0], target[1])
    return target


def normalize_path(path: str) -> str:
    """Trim leading and trailing slashes; the empty path becomes ``/``."""
    return path.strip("/") or "/"


def strip_base_path(path: str, base_path: str) -> str:
    """Remove a configured prefix (e.g. ``/lightcore``) from a request path."""
    base = base_path.rstrip("/")
    if base and (path == base or path.startswith(base + "/")):
        return path[len(base) :]
    return path


def compile_pattern(pattern: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Compile a route pattern into an anchored regex and its parameter names.

    Literal text is escaped; each ``{name}`` becomes a capturing group.
    Parameter names are recovered from the raw pattern in declaration
    order, and their count must equal the regex's group count.

    Raises ``ConfigurationError`` for malformed or duplicate placeholders.
    """
    normalized = normalize_path(pattern)
    names: list[str] = []
    parts: list[str] = []
    position = 0

    for token in _TOKEN_RE.finditer(normalized):
        name = token.group(1)
        if not _NAME_RE.match(name):
            msg = (
                f"Invalid route parameter {{{name}}} in {pattern!r}. "
                "Placeholders must be identifiers, e.g. {id}."
            )
            raise ConfigurationError(msg)
        if name in names:
            msg = f"Duplicate route parameter {{{name}}} in {pattern!r}"
            raise ConfigurationError(msg)
        parts.append(re.escape(normalized[position : token.start()]))
        parts.append(_SEGMENT)
        names.append(name)
        position = token.end()

    rest = normalized[position:]
    if "{" in rest or "}" in rest:
        msg = f"Unbalanced braces in route pattern {pattern!r}"
        raise ConfigurationError(msg)
    parts.append(re.escape(rest))

    regex = re.compile("^" + "".join(parts) + "$")
    if regex.groups != len(names):
        msg = f"Route pattern {pattern!r} compiled to {regex.groups} groups for {len(names)} names"
        raise ConfigurationError(msg)
    return regex, tuple(names)


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created at registration time and never modified. The method is
    normalized to uppercase; the pattern is compiled immediately.
    """

    method: str
    path: str
    target: Any
    base_path: str = ""
    name: str | None = None
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)
    _param_names: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "target", coerce_target(self.target))
        regex, names = compile_pattern(self.path)
        object.__setattr__(self, "_regex", regex)
        object.__setattr__(self, "_param_names", names)

    @property
    def pattern(self) -> re.Pattern[str]:
        return self._regex

    @property
    def parameter_names(self) -> tuple[str, ...]:
        """Placeholder names in declaration order."""
        return self._param_names

    # -- Matching --

    def clean_path(self, request: Request) -> str:
        """The request path with the base prefix stripped and slashes trimmed."""
        return normalize_path(strip_base_path(request.path, self.base_path))

    def matches(self, request: Request) -> bool:
        """True iff the method is equal and the cleaned path fully matches."""
        if request.method != self.method:
            return False
        return self._regex.match(self.clean_path(request)) is not None

    def get_parameters(self, request: Request) -> dict[str, str]:
        """Captured path parameters by name, or ``{}`` when the route doesn't match."""
        if request.method != self.method:
            return {}
        match = self._regex.match(self.clean_path(request))
        if match is None:
            return {}
        return dict(zip(self._param_names, match.groups(), strict=True))

    # -- Invocation --

    def handle(self, request: Request, resolve: ControllerResolver | None = None) -> Any:
        """Inject the path parameters into *request* and invoke the target.

        - ``ControllerRef``: create the controller (via *resolve* when
          given, else with no arguments) and call the named method with
          the request.
        - plain callable: call with the request followed by the captured
          values in declaration order.

        Raises ``InvalidRouteCallback`` for any other target.
        """
        params = self.get_parameters(request)
        request.set_params(params)
        target = self.target

        if isinstance(target, ControllerRef):
            controller = resolve(target.controller) if resolve else target.controller()
            action = getattr(controller, target.action, None)
            if not callable(action):
                msg = f"Controller {target.controller.__qualname__} has no method {target.action!r}"
                raise InvalidRouteCallback(msg)
            logger.debug("%s %s -> %s", self.method, self.path, target)
            return action(request)

        if callable(target):
            logger.debug("%s %s -> %s", self.method, self.path, describe_target(target))
            return target(request, *params.values())

        msg = f"Invalid callback provided for route {self.method} {self.path}: {target!r}"
        raise InvalidRouteCallback(msg)


def describe_target(target: Any) -> str:
    """Human-readable name for a route target (CLI tables, logs)."""
    if isinstance(target, ControllerRef):
        return str(target)
    return getattr(target, "__qualname__", None) or getattr(target, "__name__", None) or repr(target)


def params_view(params: Mapping[str, str]) -> str:
    """``{"id": "7"}`` -> ``"id=7"`` for log lines."""
    return ", ".join(f"{k}={v}" for k, v in params.items())
