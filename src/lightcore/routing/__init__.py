"""Routing: path patterns, an ordered route table and the dispatcher.

Routes are matched in registration order. A ``{name}`` placeholder
captures one path segment, injected into the request as a route
parameter before the target runs.
"""

from lightcore.routing.dispatcher import Dispatcher
from lightcore.routing.route import ControllerRef, Route
from lightcore.routing.router import Router

__all__ = ["ControllerRef", "Dispatcher", "Route", "Router"]
