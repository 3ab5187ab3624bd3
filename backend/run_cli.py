#!/usr/bin/env python3
"""CLI for fetching reports from a running MOPS server.

Usage:
    python run_cli.py summary
    python run_cli.py hosts --zone z1 --cluster c1
    python run_cli.py dhcpd --url http://mops.example:8888 --raw > dhcpd.conf
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

import httpx  # noqa: E402
import structlog  # noqa: E402
from rich.console import Console  # noqa: E402
from rich.panel import Panel  # noqa: E402

from config import DEFAULT_PORT  # noqa: E402
from mops_client import MopsClient, MopsClientError  # noqa: E402
from reports.scope import ReportScope  # noqa: E402

console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger(__name__)


def print_report(name: str, scope: ReportScope, text: str) -> None:
    """Print a report inside a titled panel.

    Args:
        name: Report name.
        scope: Scope the report was rendered for.
        text: Rendered report text.
    """
    title = f"[bold blue]{name}[/bold blue]{scope.query()}"
    console.print(Panel(text.rstrip("\n"), title=title, title_align="left", expand=False))


async def fetch_report(url: str, name: str, scope: ReportScope, *, raw: bool, debug: bool) -> int:
    """Fetch one report and print it; return the process exit code."""
    try:
        async with MopsClient(url, debug=debug) as client:
            text = await client.get_report(name, scope)
    except MopsClientError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e.message}")
        if e.body:
            err_console.print(e.body.rstrip("\n"))
        return 1
    except httpx.HTTPError as e:
        err_console.print(f"[bold red]Error:[/bold red] cannot reach {url}: {e}")
        logger.debug("report_fetch_failed", url=url, error=str(e))
        return 1

    if raw:
        sys.stdout.write(text)
    else:
        print_report(name, scope, text)
    return 0


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="MOPS CLI - fetch rendered fleet reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s summary
  %(prog)s hosts --zone z1
  %(prog)s dhcpd --raw > dhcpd.conf
        """,
    )

    parser.add_argument("report", help="Report (template) name")
    parser.add_argument("--zone", default="", help="Zone filter")
    parser.add_argument("--cluster", default="", help="Cluster filter")
    parser.add_argument("--host", default="", help="Host filter")
    parser.add_argument(
        "--url",
        default=f"http://localhost:{DEFAULT_PORT}",
        help="MOPS server URL",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the report text only, without decoration",
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Dump HTTP requests and responses",
    )

    args = parser.parse_args()

    scope = ReportScope(zone=args.zone, cluster=args.cluster, host=args.host)
    sys.exit(asyncio.run(fetch_report(args.url, args.report, scope, raw=args.raw, debug=args.debug)))


if __name__ == "__main__":
    main()
