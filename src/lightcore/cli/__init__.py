"""Lightcore CLI — route listing and a development server.

Entry point registered as ``lightcore`` in ``pyproject.toml``::

    [project.scripts]
    lightcore = "lightcore.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``lightcore`` command."""
    parser = argparse.ArgumentParser(
        prog="lightcore",
        description="Lightcore — a small synchronous web kernel.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- lightcore routes -------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- lightcore serve --------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Start the development server")
    serve_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    serve_parser.add_argument("--host", default=None, help="Bind host address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port number")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from lightcore.cli._routes import run_routes

        run_routes(args)
    elif args.command == "serve":
        from lightcore.cli._serve import run_server

        run_server(args)
