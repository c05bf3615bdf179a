"""``lightcore serve`` — development server.

Serves the app's WSGI interface with the standard library reference
server. Single-threaded; not for production.
"""

import argparse
import logging
from wsgiref.simple_server import make_server

from lightcore.cli._resolve import load_app

logger = logging.getLogger("lightcore.server")


def run_server(args: argparse.Namespace) -> None:
    app = load_app(args.app)
    host = args.host or app.config.host
    port = args.port if args.port is not None else app.config.port

    logging.basicConfig(level=logging.DEBUG if app.config.debug else logging.INFO)

    with make_server(host, port, app) as server:
        print(f"Serving on http://{host}:{port} (press CTRL+C to quit)")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("shutting down")
        finally:
            app.close()
