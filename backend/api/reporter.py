"""Report handler: fetch report data from metal and render a named template.

Per request, in order, with no retries:

1. make sure the template set is initialized,
2. parse the zone/cluster/host scope from the query string,
3. dial a metal client (closed again before returning, whatever happens),
4. fetch report data for the non-empty scope fields, abandoning the
   backend call if the client disconnects meanwhile,
5. decode the JSON payload,
6. render the named template against it,
7. send ``{"report": "<text>"}``.

Any failure of steps 1-6 becomes a ``500`` with a short plain-text message.
The success body is encoded completely before the response starts, so an
encoding failure is still reported as a clean ``500``.
"""

import json
from typing import Any, Optional

import anyio
import httpx
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import Receive

from api.models import GetReportResponse
from metal.client import MetalClient, MetalDialer, ReadReportDataRequest
from reports.engine import TemplateSet
from reports.scope import ReportScope
from utils.errors import MetalDialError, MetalError, MetalRequestError, MopsError, PayloadError
from utils.logging import get_logger

logger = get_logger(__name__)


class Reporter:
    """Renders reports for ``GET /report/{name}``.

    Attributes:
        dialer: Async factory returning a connected, authorized metal client.
        templates: The report template set.
    """

    def __init__(self, dialer: MetalDialer, templates: TemplateSet) -> None:
        self.dialer = dialer
        self.templates = templates

    async def serve(self, request: Request, name: str) -> Response:
        try:
            await run_in_threadpool(self.templates.ensure_ready)
        except MopsError as exc:
            return _error(exc.message)

        scope = ReportScope.from_request(request)

        try:
            text = await self.report(scope, name, request.receive)
        except MopsError as exc:
            return _error(exc.message)

        try:
            body = GetReportResponse(report=text).model_dump_json() + "\n"
        except ValueError as exc:
            return _error(f"failed to encode report {name!r}: {exc}")

        # No media type here: the chain's JSON default applies.
        return Response(content=body, status_code=200)

    async def report(self, scope: ReportScope, template: str, receive: Optional[Receive] = None) -> str:
        """Fetch report data for ``scope`` and render ``template`` against it.

        When ``receive`` is given, the backend fetch is cancelled as soon as
        it yields ``http.disconnect``.

        Raises:
            MetalError: If the backend cannot be dialed, the fetch fails or
                the client went away during the fetch.
            PayloadError: If the backend payload is not valid JSON.
            TemplateRenderError: If the template is missing or fails.
        """
        try:
            client = await self.dialer()
        except MopsError as exc:
            raise MetalDialError(f"failed to dial metal client: {exc.message}") from exc
        except (httpx.HTTPError, OSError) as exc:
            raise MetalDialError(f"failed to dial metal client: {exc}") from exc

        try:
            if receive is None:
                data = await self._fetch(client, scope)
            else:
                data = await self._fetch_until_disconnect(client, scope, receive)
            return await run_in_threadpool(self.templates.render, template, data)
        finally:
            await self._close(client)

    async def _fetch_until_disconnect(self, client: MetalClient, scope: ReportScope, receive: Receive) -> Any:
        data: Any = None
        error: Optional[Exception] = None
        done = False

        async with anyio.create_task_group() as tg:

            async def watch_disconnect() -> None:
                while True:
                    message = await receive()
                    if message["type"] == "http.disconnect":
                        tg.cancel_scope.cancel()
                        return

            async def fetch() -> None:
                nonlocal data, error, done
                try:
                    data = await self._fetch(client, scope)
                except Exception as exc:
                    error = exc
                done = True
                tg.cancel_scope.cancel()

            tg.start_soon(watch_disconnect)
            tg.start_soon(fetch)

        if error is not None:
            raise error
        if not done:
            logger.info("report_fetch_cancelled", scope=scope.params())
            raise MetalRequestError("failed to read report data: client disconnected")
        return data

    async def _fetch(self, client: MetalClient, scope: ReportScope) -> Any:
        ctx = client.context()
        request = ReadReportDataRequest(**scope.params())

        try:
            response = await client.read_report_data(ctx, request)
        except MetalError:
            raise
        except (httpx.HTTPError, OSError) as exc:
            raise MetalError(f"failed to read report data: {exc}") from exc

        try:
            return json.loads(response.data)
        except ValueError as exc:
            raise PayloadError(f"failed to decode report data: {exc}") from exc

    async def _close(self, client: MetalClient) -> None:
        try:
            await client.close()
        except Exception as exc:
            logger.error("metal_client_close_failed", error=str(exc))


def _error(message: str) -> Response:
    return PlainTextResponse(message, status_code=500)
