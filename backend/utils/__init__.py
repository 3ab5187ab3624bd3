"""Utility modules for the MOPS backend."""

from utils.errors import (
    CIDRError,
    MetalDialError,
    MetalError,
    MetalRequestError,
    MopsError,
    PayloadError,
    TemplateInitError,
    TemplateRenderError,
)
from utils.logging import configure_logging, get_logger

__all__ = [
    # Exceptions
    "CIDRError",
    "MetalDialError",
    "MetalError",
    "MetalRequestError",
    "MopsError",
    "PayloadError",
    "TemplateInitError",
    "TemplateRenderError",
    # Logging
    "configure_logging",
    "get_logger",
]
