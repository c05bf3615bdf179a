"""Request dispatch: match a route, then hand it the request."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lightcore.http.request import Request
    from lightcore.routing.router import Router


class Dispatcher:
    """Resolves a request through the router and invokes the matched route.

    Stateless beyond the router it holds. ``RouteNotFound`` propagates
    unchanged; so does anything the handler raises.
    """

    __slots__ = ("router",)

    def __init__(self, router: Router) -> None:
        self.router = router

    def dispatch(self, request: Request) -> Any:
        route = self.router.match(request)
        return route.handle(request, self.router.resolver)
