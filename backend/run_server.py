#!/usr/bin/env python3
"""Metal Operations Server.

Usage:
    python run_server.py
    python run_server.py --port 9000 --metal https://metal.example:8443
    python run_server.py --metal-user ops --metal-pass secret --json-logs

Flags override the environment variables read by ``config.py``.
"""

import argparse
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

import structlog  # noqa: E402
import uvicorn  # noqa: E402

from config import Config, config  # noqa: E402
from utils.logging import configure_logging  # noqa: E402

logger = structlog.get_logger(__name__)


def parse_args(argv: list[str] | None = None, cfg: Config = config) -> argparse.Namespace:
    """Parse command-line flags, defaulting to the configured values."""
    parser = argparse.ArgumentParser(description="Metal Operations Server")
    parser.add_argument("--port", type=int, default=cfg.port, help="port to listen on")
    parser.add_argument("--host", default=cfg.host, help="address to listen on")
    parser.add_argument("--metal", default=cfg.metal_server, help="address of the metal server")
    parser.add_argument("--metal-user", default=cfg.metal_user, help="username for authentication")
    parser.add_argument("--metal-pass", default=cfg.metal_pass, help="password for authentication")
    parser.add_argument("--log-level", default=cfg.log_level, help="log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=cfg.json_logs,
        help="emit JSON log lines",
    )
    return parser.parse_args(argv)


def apply_args(args: argparse.Namespace, cfg: Config = config) -> Config:
    """Copy flag values onto ``cfg``."""
    cfg.port = args.port
    cfg.host = args.host
    cfg.metal_server = args.metal
    cfg.metal_user = args.metal_user
    cfg.metal_pass = args.metal_pass
    cfg.log_level = args.log_level
    return cfg


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)
    cfg = apply_args(args)

    # api.main configures logging from the environment on import; flags win.
    from api.main import create_app

    configure_logging(json_logs=args.json_logs, log_level=cfg.log_level)

    logger.info("server_starting", port=cfg.port, metal=cfg.metal_server)

    uvicorn.run(
        create_app(cfg),
        host=cfg.host,
        port=cfg.port,
        timeout_keep_alive=cfg.keep_alive_timeout,
        access_log=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
