"""Composition of ASGI middleware into a single application.

A middleware here is any callable that takes an ASGI app and returns a new
ASGI app wrapping it. ``chain`` nests them so that the first one listed is
the outermost: it sees the request first and the response last.

Usage::

    stack = chain(recovery(logger), request_id(counter), access_log(logger), default_json)
    app = stack(inner_app)

The result is also accepted by Starlette's ``add_middleware``, which calls
it with the wrapped app.
"""

from typing import Callable

from starlette.types import ASGIApp

Middleware = Callable[[ASGIApp], ASGIApp]


def chain(*middlewares: Middleware) -> Middleware:
    """Return a middleware applying ``middlewares`` in the given order on entry."""

    def wrap(app: ASGIApp) -> ASGIApp:
        for middleware in reversed(middlewares):
            app = middleware(app)
        return app

    return wrap
