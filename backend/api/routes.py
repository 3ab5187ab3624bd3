"""API routes for the MOPS report service.

This module defines the report endpoint and the health check.
"""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from api.models import GetReportResponse, HealthResponse
from api.reporter import Reporter

logger = structlog.get_logger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"


def get_reporter(request: Request) -> Reporter:
    """Return the reporter stored on the application by ``create_app``."""
    return request.app.state.reporter


# ---------------------------------------------------------------------------
# Report Endpoint
# ---------------------------------------------------------------------------


@router.get(
    "/report/{name}",
    response_model=GetReportResponse,
    responses={
        200: {"description": "Rendered report"},
        500: {
            "description": "Template, backend or initialization failure",
            "content": {"text/plain": {}},
        },
    },
    summary="Render a report",
    description=(
        "Renders the named report template against metal report data. "
        "Optional query parameters zone, cluster and host filter the data."
    ),
)
async def get_report(
    name: str,
    request: Request,
    reporter: Reporter = Depends(get_reporter),
) -> Response:
    """Render report ``name`` for the zone/cluster/host scope in the query string.

    Args:
        name: Template name, without extension.
        request: Incoming request; its query string carries the scope.
        reporter: Report handler of this application.

    Returns:
        ``{"report": "<text>"}`` on success, a plain-text 500 otherwise.
    """
    return await reporter.serve(request, name)


# ---------------------------------------------------------------------------
# Health Check Endpoint
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check API health and template set status.",
)
async def health_check(reporter: Reporter = Depends(get_reporter)) -> HealthResponse:
    """Report service health.

    The template set is not initialized here; ``pending`` means no report
    has been requested yet.
    """
    templates = reporter.templates.status
    status = "degraded" if templates.startswith("error") else "ok"
    return HealthResponse(status=status, version=API_VERSION, templates=templates)
