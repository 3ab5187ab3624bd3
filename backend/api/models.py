"""Pydantic models for the MOPS API response bodies.

Report failures are returned as plain text, so only the success envelope
and the health check have models.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class GetReportResponse(BaseModel):
    """Response body of ``GET /report/{name}``.

    Attributes:
        report: The rendered report text.
    """

    report: str = Field(
        description="Rendered report text"
    )


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status ('ok' or 'degraded').
        version: API version.
        timestamp: Current server time.
        templates: Template set state: 'ok', 'pending' or 'error: <reason>'.
    """

    status: str = Field(
        default="ok",
        description="Service status"
    )
    version: str = Field(
        default="1.0.0",
        description="API version"
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Current server time"
    )
    templates: str = Field(
        default="pending",
        description="Template set state"
    )
