"""Ordered route table with first-match resolution.

Routes are tried in registration order; the first route whose method
and cleaned path both match wins. Registering the same method and path
twice keeps both entries, and the earlier one shadows the later.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from lightcore.errors import RouteNotFound
from lightcore.routing.route import ControllerResolver, Route, params_view

if TYPE_CHECKING:
    from lightcore.http.request import Request

logger = logging.getLogger("lightcore.routing")


class Router:
    """Registration-ordered route collection.

    Usage::

        router = Router(base_path="/lightcore")
        router.get("users/{id}", show_user)
        router.post("users", (UserController, "store"))
        route = router.match(request)
    """

    __slots__ = ("_routes", "base_path", "resolver")

    def __init__(self, base_path: str = "", resolver: ControllerResolver | None = None) -> None:
        self.base_path = base_path
        self.resolver = resolver
        self._routes: list[Route] = []

    # -- Registration --

    def add(self, method: str, path: str, target: Any, *, name: str | None = None) -> Route:
        """Register a route and return it."""
        route = Route(method, path, target, base_path=self.base_path, name=name)
        self._routes.append(route)
        return route

    def get(self, path: str, target: Any, *, name: str | None = None) -> Route:
        return self.add("GET", path, target, name=name)

    def post(self, path: str, target: Any, *, name: str | None = None) -> Route:
        return self.add("POST", path, target, name=name)

    def put(self, path: str, target: Any, *, name: str | None = None) -> Route:
        return self.add("PUT", path, target, name=name)

    def patch(self, path: str, target: Any, *, name: str | None = None) -> Route:
        return self.add("PATCH", path, target, name=name)

    def delete(self, path: str, target: Any, *, name: str | None = None) -> Route:
        return self.add("DELETE", path, target, name=name)

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    # -- Matching --

    def match(self, request: Request) -> Route:
        """Return the first route matching *request*.

        Raises ``RouteNotFound`` (a 404 ``HTTPError``) when none does.
        """
        for route in self._routes:
            if route.matches(request):
                logger.debug(
                    "matched %s %s -> %s [%s]",
                    request.method,
                    request.path,
                    route.path,
                    params_view(route.get_parameters(request)),
                )
                return route
        logger.debug("no route for %s %s", request.method, request.path)
        raise RouteNotFound
