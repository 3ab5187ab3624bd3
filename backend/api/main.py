"""FastAPI application entry point for the MOPS API.

This module builds the FastAPI application: the report router, the
metal dialer, the lazily initialized template set, and the middleware
chain wrapped around all of it.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI

from config import Config, config
from metal.client import MetalDialer, make_dialer
from middleware import RequestCounter, access_log, chain, default_json, recovery, request_id
from reports.engine import TemplateSet
from utils.logging import configure_logging

from .reporter import Reporter
from .routes import API_VERSION, router

# ---------------------------------------------------------------------------
# Bootstrap structured logging before anything else
# ---------------------------------------------------------------------------
configure_logging(json_logs=config.json_logs, log_level=config.log_level)

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown logging."""
    logger.info("api_starting", version=API_VERSION)
    logger.info("api_ready")

    yield

    logger.info("api_shutdown_complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    cfg: Optional[Config] = None,
    *,
    dialer: Optional[MetalDialer] = None,
    templates: Optional[TemplateSet] = None,
    counter: Optional[RequestCounter] = None,
) -> FastAPI:
    """Build the MOPS application.

    Args:
        cfg: Configuration; the module-level ``config`` when omitted.
        dialer: Metal client factory; built from ``cfg`` when omitted.
        templates: Report template set; loaded from ``cfg.template_dir``
            when omitted.
        counter: Request ID counter; a fresh one when omitted.
    """
    cfg = cfg or config

    if dialer is None:
        dialer = make_dialer(
            cfg.metal_server,
            cfg.metal_user,
            cfg.metal_pass,
            verify=cfg.metal_verify_tls,
            timeout=cfg.metal_timeout,
        )
    if templates is None:
        templates = TemplateSet(cfg.template_dir, max_include_depth=cfg.max_include_depth)

    app = FastAPI(
        title="Metal Operations Server",
        description="Renders fleet reports from metal-management data through named templates",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.reporter = Reporter(dialer, templates)
    app.include_router(router)

    # Order matters: outermost first. The fault boundary wraps everything so
    # no other layer's failure escapes; the access log sits inside the
    # request ID so every record carries it.
    app.add_middleware(
        chain(
            recovery(),
            request_id(counter or RequestCounter()),
            access_log(),
            default_json,
        )
    )

    return app


app = create_app()
