"""Lightcore application class.

The application context: one ``Container``, one ``Router`` and one
``Dispatcher``, created together and owned by the ``App``. There are no
module-level globals; two apps in one process never share state.

Usage::

    app = App(AppConfig(base_path="/lightcore"))

    @app.get("users/{id}")
    def show_user(request: Request, id: str) -> dict:
        return {"id": id}

    app.post("users", (UserController, "store"))
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeAlias

from lightcore.config import AppConfig
from lightcore.container import Container
from lightcore.data.connection import Connection
from lightcore.errors import HTTPError
from lightcore.http.request import Request
from lightcore.http.response import Response
from lightcore.providers import CoreServiceProvider, DatabaseServiceProvider, ServiceProvider
from lightcore.routing import Dispatcher, Route, Router
from lightcore.server.errors import http_error_response, log_internal_error
from lightcore.server.negotiation import negotiate
from lightcore.server.sender import StartResponse, WSGITransport
from lightcore.validation.rules import RuleRegistry, default_rules

logger = logging.getLogger("lightcore.server")

Handler: TypeAlias = Callable[..., Any]


class App:
    """The lightcore application.

    Construction registers, then boots, the core providers followed by
    any extra *providers* (instances or classes), in order. Routes may be
    registered at any time before the first request.
    """

    __slots__ = ("_providers", "config", "container", "dispatcher", "router", "rules")

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        providers: Iterable[ServiceProvider | type[ServiceProvider]] = (),
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.container = Container()
        self.router = Router(self.config.base_path, resolver=self.resolve_controller)
        self.dispatcher = Dispatcher(self.router)
        self.rules: RuleRegistry = default_rules.copy()

        self.container.instance(App, self)
        self._providers: list[ServiceProvider] = [
            provider() if isinstance(provider, type) else provider
            for provider in (CoreServiceProvider, DatabaseServiceProvider, *providers)
        ]
        for provider in self._providers:
            provider.register(self.container)
        for provider in self._providers:
            provider.boot(self.container)

    # -- Route registration --

    def add_route(self, method: str, path: str, target: Any, *, name: str | None = None) -> Route:
        """Register *target* for *method* and *path*.

        Targets are callables (called with the request, then the path
        parameters), ``ControllerRef`` objects, or ``(Controller, "method")``
        tuples.
        """
        return self.router.add(method, path, target, name=name)

    def route(
        self,
        path: str,
        *,
        methods: Sequence[str] = ("GET",),
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``("GET",)``.
            name: Optional route name, shown by ``lightcore routes``.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods:
                self.add_route(method, path, func, name=name)
            return func

        return decorator

    def get(self, path: str, target: Any = None, *, name: str | None = None) -> Any:
        return self._register("GET", path, target, name)

    def post(self, path: str, target: Any = None, *, name: str | None = None) -> Any:
        return self._register("POST", path, target, name)

    def put(self, path: str, target: Any = None, *, name: str | None = None) -> Any:
        return self._register("PUT", path, target, name)

    def patch(self, path: str, target: Any = None, *, name: str | None = None) -> Any:
        return self._register("PATCH", path, target, name)

    def delete(self, path: str, target: Any = None, *, name: str | None = None) -> Any:
        return self._register("DELETE", path, target, name)

    def _register(self, method: str, path: str, target: Any, name: str | None) -> Any:
        """Register directly, or return a decorator when *target* is omitted."""
        if target is None:
            return self.route(path, methods=(method,), name=name)
        return self.add_route(method, path, target, name=name)

    # -- Controllers --

    def resolve_controller(self, controller: type) -> Any:
        """Controller instance for a route: from the container when bound, else ``controller()``."""
        if self.container.has(controller):
            return self.container.get(controller)
        return controller()

    # -- Request handling --

    def handle(self, request: Request) -> Response:
        """Dispatch *request* and convert the handler's result to a Response.

        Errors propagate; see ``respond()`` for the boundary behavior.
        """
        if request.rules is None:
            request.set_rules(self.rules)
        return negotiate(self.dispatcher.dispatch(request))

    def respond(self, request: Request) -> Response:
        """``handle()`` with HTTPError rendered as a JSON error response.

        Any other exception is logged and re-raised unchanged. The calling
        thread's database connection is released once the request is done.
        """
        try:
            return self.handle(request)
        except HTTPError as exc:
            return http_error_response(exc, request)
        except Exception:
            log_internal_error(request)
            raise
        finally:
            if self.container.resolved(Connection):
                self.container.get(Connection).release()

    def __call__(self, environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
        """WSGI entry point."""
        request = Request.from_environ(
            environ, max_body_size=self.config.max_body_size, rules=self.rules
        )
        response = self.respond(request)
        transport = WSGITransport(start_response)
        response.send(transport)
        return transport.chunks

    # -- Lifecycle --

    def close(self) -> None:
        """Release resources held by registered services (the DB connection)."""
        if self.container.resolved(Connection):
            self.container.get(Connection).disconnect()

    def __repr__(self) -> str:
        return f"<App routes={len(self.router)} base_path={self.config.base_path!r}>"
