"""Metal-management backend client."""

from metal.client import (
    MetalClient,
    MetalContext,
    MetalDialer,
    ReadReportDataRequest,
    ReadReportDataResponse,
    make_dialer,
)

__all__ = [
    "MetalClient",
    "MetalContext",
    "MetalDialer",
    "ReadReportDataRequest",
    "ReadReportDataResponse",
    "make_dialer",
]
