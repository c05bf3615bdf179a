"""``lightcore routes`` — list registered routes.

Prints METHOD, PATH and TARGET for every route, in registration order
(the order matching tries them).
"""

import argparse

from lightcore.cli._resolve import load_app
from lightcore.routing.route import describe_target


def run_routes(args: argparse.Namespace) -> None:
    app = load_app(args.app)

    routes = app.router.routes
    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str]] = []
    for route in routes:
        target = describe_target(route.target)
        if route.name:
            target = f"{target} ({route.name})"
        rows.append((route.method, route.path, target))

    max_method = max(max(len(r[0]) for r in rows), 6)  # "METHOD" header
    max_path = max(max(len(r[1]) for r in rows), 4)  # "PATH" header

    fmt = f"{{:<{max_method}}}  {{:<{max_path}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "TARGET"))
    sep_len = max_method + max_path + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for method, path, target in rows:
        print(fmt.format(method, path, target))
