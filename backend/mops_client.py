"""Minimal REST client for the MOPS service.

Wraps ``httpx.AsyncClient`` with JSON in/out helpers. In debug mode every
request and response is dumped to stdout as a hex listing, which is handy
when checking exactly what went over the wire.

Usage::

    async with MopsClient("http://localhost:8888") as client:
        text = await client.get_report("summary", ReportScope(zone="z1"))
"""

import json
import string
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from reports.scope import ReportScope

logger = structlog.get_logger(__name__)


class MopsClientError(Exception):
    """Raised when the MOPS service answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


@dataclass
class RawResponse:
    """Headers and fully read body of a successful response."""

    headers: httpx.Headers
    body: bytes


def hex_dump(data: bytes, width: int = 16) -> str:
    """Format ``data`` like ``hexdump -C``: offset, hex bytes, printable text."""
    printable = set(string.printable.encode()) - set(b"\t\n\r\x0b\x0c")
    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]
        hex_part = " ".join(f"{b:02x}" for b in chunk)
        text = "".join(chr(b) if b in printable else "." for b in chunk)
        lines.append(f"{offset:08x}  {hex_part:<{width * 3}} |{text}|")
    return "\n".join(lines)


def _dump_request(request: httpx.Request) -> bytes:
    head = f"{request.method} {request.url.raw_path.decode()} HTTP/1.1\r\n"
    head += "".join(f"{k}: {v}\r\n" for k, v in request.headers.items())
    return (head + "\r\n").encode() + request.content


def _dump_response(response: httpx.Response) -> bytes:
    head = f"HTTP/1.1 {response.status_code} {response.reason_phrase}\r\n"
    head += "".join(f"{k}: {v}\r\n" for k, v in response.headers.items())
    return (head + "\r\n").encode() + response.content


class MopsClient:
    """JSON REST client for a MOPS server.

    Attributes:
        url: Base URL of the server, without a trailing slash.
        debug: Dump requests and responses to stdout.
    """

    def __init__(
        self,
        url: str,
        *,
        debug: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.debug = debug
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "MopsClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Report API
    # ------------------------------------------------------------------

    async def get_report(self, name: str, scope: Optional[ReportScope] = None) -> str:
        """Fetch the rendered text of report ``name`` for ``scope``."""
        scope = scope or ReportScope()
        resp = await self.get(f"report/{name}{scope.query()}")
        return resp["report"]

    # ------------------------------------------------------------------
    # JSON verbs
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Any:
        return await self._json("GET", path)

    async def post(self, path: str, body: Any) -> Any:
        return await self._json("POST", path, body)

    async def put(self, path: str, body: Any) -> Any:
        return await self._json("PUT", path, body)

    async def patch(self, path: str, body: Any) -> Any:
        return await self._json("PATCH", path, body)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)

    async def _json(self, method: str, path: str, body: Any = None) -> Any:
        headers = {"Accept": "application/json"}
        content = None
        if body is not None:
            content = json.dumps(body).encode()
            headers["Content-Type"] = "application/json"

        resp = await self.request(method, path, headers=headers, content=content)
        if not resp.body:
            return None
        return json.loads(resp.body)

    async def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> RawResponse:
        """Send a request and return headers and body of a 2xx response.

        Raises:
            MopsClientError: If the server answers outside the 2xx range.
            httpx.HTTPError: On transport failure.
        """
        request = self._http.build_request(method, self._url(path), headers=headers, content=content)

        if self.debug:
            print(f"REQUEST:\n{hex_dump(_dump_request(request))}")

        response = await self._http.send(request)
        await response.aread()

        if self.debug:
            print(f"RESPONSE:\n{hex_dump(_dump_response(response))}")

        if not response.is_success:
            logger.debug("mops_request_failed", method=method, path=path, status=response.status_code)
            raise MopsClientError(
                f"http error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text,
            )

        return RawResponse(headers=response.headers, body=response.content)

    def _url(self, path: str) -> str:
        # prevent accidental double slash
        return f"{self.url}/{path.lstrip('/')}"
