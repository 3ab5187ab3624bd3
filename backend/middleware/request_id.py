"""Request ID middleware for request tracing.

Assigns every incoming HTTP request the next value of a process-wide
``RequestCounter`` and:

1. stores it in the request state (``request.state.request_id``),
2. binds it to ``structlog.contextvars`` so all log lines emitted during the
   request include ``request_id``,
3. returns it in the ``X-Request-Id`` response header.

IDs are unique and strictly increasing for the life of one counter. They
are not unique across restarts or across instances.
"""

import threading

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from middleware.chain import Middleware

REQUEST_ID_HEADER = "X-Request-Id"


class RequestCounter:
    """Thread-safe monotonically increasing counter.

    The service shares one instance across all requests; tests create their
    own so IDs start from a known value.
    """

    def __init__(self, start: int = 0) -> None:
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


def get_request_id(scope: Scope) -> int:
    """Return the request ID stored in ``scope``, or 0 if none was assigned."""
    state = scope.get("state") or {}
    value = state.get("request_id", 0)
    return value if isinstance(value, int) else 0


def request_id(counter: RequestCounter) -> Middleware:
    """Build a middleware assigning request IDs from ``counter``."""

    def wrap(app: ASGIApp) -> ASGIApp:
        async def middleware(scope: Scope, receive: Receive, send: Send) -> None:
            if scope["type"] != "http":
                await app(scope, receive, send)
                return

            rid = counter.next()
            scope.setdefault("state", {})["request_id"] = rid

            async def send_with_request_id(message: Message) -> None:
                if message["type"] == "http.response.start":
                    message.setdefault("headers", [])
                    headers = MutableHeaders(scope=message)
                    headers[REQUEST_ID_HEADER] = str(rid)
                await send(message)

            with structlog.contextvars.bound_contextvars(request_id=rid):
                await app(scope, receive, send_with_request_id)

        return middleware

    return wrap
