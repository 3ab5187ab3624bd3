"""Client for the metal-management backend.

The service talks to metal through an HTTP gateway:

- ``POST /v1/auth/token`` with ``{"username", "password"}`` returns
  ``{"token": "..."}``.
- ``GET /v1/report-data`` with optional ``zone``, ``cluster`` and ``host``
  query parameters returns the report document as raw JSON bytes.

Handles are not pooled. ``make_dialer`` returns the async factory the report
handler calls once per request; the handler closes the handle when the
request is done.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import httpx
import structlog
from pydantic import BaseModel

from utils.errors import MetalDialError, MetalRequestError

logger = structlog.get_logger(__name__)

AUTH_PATH = "/v1/auth/token"
REPORT_DATA_PATH = "/v1/report-data"


# ---------------------------------------------------------------------------
# Request / response types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetalContext:
    """Credentials carried into every backend call."""

    token: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return dict(self.headers)
        return {**self.headers, "Authorization": f"Bearer {self.token}"}


class ReadReportDataRequest(BaseModel):
    """Report data query. Filters left as ``None`` are not sent at all."""

    zone: Optional[str] = None
    cluster: Optional[str] = None
    host: Optional[str] = None

    def query_params(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


@dataclass
class ReadReportDataResponse:
    data: bytes = b""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class MetalClient:
    """Authenticated handle on the metal backend.

    Attributes:
        base_url: Gateway URL, e.g. ``https://metal.example:8443``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        verify: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._ctx = MetalContext()
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            verify=verify,
            timeout=timeout,
            transport=transport,
        )

    def context(self) -> MetalContext:
        """Return the context carrying this handle's credentials."""
        return self._ctx

    async def authorize(self, username: str, password: str) -> None:
        """Exchange credentials for a bearer token.

        Raises:
            MetalDialError: If the backend is unreachable or rejects the
                credentials.
        """
        try:
            response = await self._http.post(AUTH_PATH, json={"username": username, "password": password})
        except httpx.HTTPError as exc:
            raise MetalDialError(f"failed to reach metal at {self.base_url}: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise MetalDialError(
                f"metal authorization failed: {response.status_code} {response.reason_phrase}",
                details={"status": response.status_code},
            )

        try:
            token = response.json()["token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise MetalDialError("metal authorization returned no token") from exc

        self._ctx = MetalContext(token=token)
        logger.debug("metal_authorized", server=self.base_url, user=username)

    async def read_report_data(self, ctx: MetalContext, request: ReadReportDataRequest) -> ReadReportDataResponse:
        """Fetch the report document for the filters in ``request``.

        Raises:
            MetalRequestError: On transport failure or a non-2xx response.
        """
        try:
            response = await self._http.get(
                REPORT_DATA_PATH,
                params=request.query_params(),
                headers=ctx.auth_headers(),
            )
        except httpx.HTTPError as exc:
            raise MetalRequestError(f"failed to read report data: {exc}") from exc

        if not response.is_success:
            raise MetalRequestError(
                f"failed to read report data: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        return ReadReportDataResponse(data=response.content)

    async def close(self) -> None:
        await self._http.aclose()


MetalDialer = Callable[[], Awaitable[MetalClient]]


def make_dialer(
    server: str,
    username: str,
    password: str,
    *,
    verify: bool = False,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MetalDialer:
    """Return an async factory producing connected, authorized clients."""

    async def dial() -> MetalClient:
        client = MetalClient(server, verify=verify, timeout=timeout, transport=transport)
        try:
            await client.authorize(username, password)
        except BaseException:
            await client.close()
            raise
        return client

    return dial
