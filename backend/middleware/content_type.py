"""Default response content type.

Handlers that write JSON without naming a media type get
``application/json; charset=utf-8``. The check happens on the response start
message, once the wrapped handler has committed its headers, and never
replaces a content type the handler chose.
"""

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def default_json(app: ASGIApp) -> ASGIApp:
    async def middleware(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        async def send_with_default(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                if not headers.get("content-type"):
                    headers["content-type"] = JSON_CONTENT_TYPE
            await send(message)

        await app(scope, receive, send_with_default)

    return middleware
