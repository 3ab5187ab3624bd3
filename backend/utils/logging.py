"""Structured logging for MOPS.

``configure_logging`` sets up structlog and the stdlib root logger in one
go, so structlog events and plain stdlib records (uvicorn, httpx) pass
through the same processors and come out in one format: JSON lines in
production, colored console lines otherwise.

Every record carries ``service="mops"``. Records emitted while a request is
in flight also carry its ``request_id`` (bound by the request ID
middleware through ``structlog.contextvars``).
"""

import logging
import os
import sys
from typing import Any

import structlog

SERVICE_NAME = "mops"

# Per-request chatter from these is dropped below WARNING.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _add_service(logger: Any, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    *,
    json_logs: bool | None = None,
    log_level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for the whole process.

    Safe to call more than once; the server entry point calls it again after
    command-line flags are parsed.

    Args:
        json_logs: Force JSON output. Defaults to ``True`` when
            ``ENVIRONMENT`` is ``"production"``.
        log_level: Root log level (DEBUG, INFO, WARNING, ERROR).
    """
    if json_logs is None:
        json_logs = os.getenv("ENVIRONMENT", "development") == "production"

    log_level_value = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        _add_service,
    ]

    if json_logs:
        render: list[structlog.types.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
        )
    )

    logging.basicConfig(handlers=[handler], level=log_level_value, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level_value, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound logger for *name*.

    Args:
        name: Typically ``__name__`` of the calling module.
    """
    return structlog.get_logger(name)
