"""Structured access logging.

One ``handler`` record per request, emitted after the wrapped app has
finished (or raised), with the request, the recorded result and the client
grouped as nested fields::

    handler call={"method": "GET", "path": "/report/summary", "query": {"zone": ["z1"]}, "bytes": 0}
            result={"status": 200, "duration_ms": 12.3, "bytes": 41}
            client={"address": "10.1.2.3:53211", "user_agent": "curl/8.5.0"}
            id=7

Records for status >= 400 are logged at error level and carry the captured
error body. When an exception escapes before anything was written the
record shows status 0; the fault boundary outside this middleware logs the
exception and sends the 500.
"""

import time
from typing import Any

import structlog
from starlette.datastructures import Headers, QueryParams
from starlette.types import ASGIApp, Receive, Scope, Send

from middleware.chain import Middleware
from middleware.request_id import get_request_id
from middleware.response import ResponseRecorder

_default_logger = structlog.get_logger(__name__)


def _query_groups(scope: Scope) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for key, value in QueryParams(scope.get("query_string", b"")).multi_items():
        grouped.setdefault(key, []).append(value)
    return grouped


def _client_address(scope: Scope) -> str:
    client = scope.get("client")
    if not client:
        return "unknown"
    host, port = client
    return f"{host}:{port}"


def _content_length(headers: Headers) -> int:
    try:
        return int(headers.get("content-length", "0"))
    except ValueError:
        return 0


def access_log(logger: Any = None) -> Middleware:
    """Build a middleware that logs one structured record per request."""
    log = logger or _default_logger

    def wrap(app: ASGIApp) -> ASGIApp:
        async def middleware(scope: Scope, receive: Receive, send: Send) -> None:
            if scope["type"] != "http":
                await app(scope, receive, send)
                return

            start = time.perf_counter()
            recorder = ResponseRecorder(send)

            try:
                await app(scope, receive, recorder)
            finally:
                headers = Headers(scope=scope)
                result: dict[str, Any] = {
                    "status": recorder.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "bytes": recorder.bytes_written,
                }

                emit = log.info
                if recorder.status_code >= 400:
                    emit = log.error
                    result["error"] = recorder.error_body or ""

                emit(
                    "handler",
                    call={
                        "method": scope.get("method", ""),
                        "path": scope.get("path", ""),
                        "query": _query_groups(scope),
                        "bytes": _content_length(headers),
                    },
                    result=result,
                    client={
                        "address": _client_address(scope),
                        "user_agent": headers.get("user-agent", ""),
                    },
                    id=get_request_id(scope),
                )

        return middleware

    return wrap
