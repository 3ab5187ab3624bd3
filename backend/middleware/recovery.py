"""Fault boundary for the request pipeline.

``recovery`` is installed as the outermost middleware of the chain. Any
exception escaping the rest of the chain is logged at error level and
turned into a generic ``500 Internal Server Error``; the client never sees
internal detail and the server worker never sees the exception.
"""

from typing import Any

import structlog
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from middleware.chain import Middleware
from middleware.request_id import REQUEST_ID_HEADER, get_request_id

INTERNAL_ERROR_BODY = "Internal Server Error"

_default_logger = structlog.get_logger(__name__)


def recovery(logger: Any = None) -> Middleware:
    """Build a middleware converting unhandled exceptions into 500 responses.

    If the response had already started when the exception was raised, the
    status can no longer change: the fault is logged and the response is
    left as it is.
    """
    log = logger or _default_logger

    def wrap(app: ASGIApp) -> ASGIApp:
        async def middleware(scope: Scope, receive: Receive, send: Send) -> None:
            if scope["type"] != "http":
                await app(scope, receive, send)
                return

            response_started = False

            async def send_tracking_start(message: Message) -> None:
                nonlocal response_started
                if message["type"] == "http.response.start":
                    response_started = True
                await send(message)

            try:
                await app(scope, receive, send_tracking_start)
            except Exception as exc:
                log.error(
                    "panic_recovered",
                    error=repr(exc),
                    path=scope.get("path", ""),
                    response_started=response_started,
                    exc_info=exc,
                )
                if response_started:
                    return

                headers = {}
                rid = get_request_id(scope)
                if rid:
                    headers[REQUEST_ID_HEADER] = str(rid)

                response = PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500, headers=headers)
                await response(scope, receive, send)

        return middleware

    return wrap
