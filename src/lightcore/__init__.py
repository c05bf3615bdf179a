"""Lightcore — a small synchronous web kernel.

Routes, a service container, request/response objects and a fluent
query builder, wired together by an explicit application object.

Basic usage::

    from lightcore import App

    app = App()

    @app.get("users/{id}")
    def show_user(request, id):
        return {"id": id}

    # any WSGI server: gunicorn module:app
    # or: lightcore serve module:app

Data access (SQLite built in, ``pip install lightcore[mysql]`` for MySQL)::

    from lightcore.data import Database
    db = Database.from_config(DatabaseConfig(driver="sqlite", name="app.db"))
    users = db.table("users").where("active", "=", 1).get()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BindingNotFound",
    "ConfigurationError",
    "Container",
    "ControllerRef",
    "DatabaseConfig",
    "HTTPError",
    "InvalidRouteCallback",
    "LightcoreError",
    "Request",
    "RequestBodyTooLarge",
    "Response",
    "ResponseAlreadySent",
    "RouteNotFound",
    "ServiceProvider",
    "UnknownValidationRule",
    "ValidationError",
]

_ERRORS = frozenset(
    {
        "BindingNotFound",
        "ConfigurationError",
        "HTTPError",
        "InvalidRouteCallback",
        "LightcoreError",
        "RequestBodyTooLarge",
        "ResponseAlreadySent",
        "RouteNotFound",
        "UnknownValidationRule",
        "ValidationError",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import lightcore`` fast while providing a clean top-level API.
    """
    if name == "App":
        from lightcore.app import App

        return App

    if name in ("AppConfig", "DatabaseConfig"):
        from lightcore import config as _config

        return getattr(_config, name)

    if name == "Container":
        from lightcore.container import Container

        return Container

    if name == "ControllerRef":
        from lightcore.routing.route import ControllerRef

        return ControllerRef

    if name == "Request":
        from lightcore.http.request import Request

        return Request

    if name == "Response":
        from lightcore.http.response import Response

        return Response

    if name == "ServiceProvider":
        from lightcore.providers import ServiceProvider

        return ServiceProvider

    if name in _ERRORS:
        from lightcore import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
