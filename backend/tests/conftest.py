"""Shared fixtures and fakes for the MOPS test suite."""

import json
import sys
from pathlib import Path
from typing import Optional

import pytest

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from metal.client import MetalContext, ReadReportDataRequest, ReadReportDataResponse  # noqa: E402

REPORT_DATA = {
    "zones": [
        {
            "name": "z1",
            "clusters": [
                {
                    "name": "c1",
                    "hosts": [
                        {
                            "name": "node-1",
                            "interfaces": [
                                {"name": "eth0", "mac": "AA:BB:CC:00:00:01", "cidr": "10.0.0.11/24", "default": True},
                                {"name": "ib0", "cidr": "10.1.0.11/16"},
                            ],
                        },
                        {
                            "name": "node-2",
                            "interfaces": [
                                {"name": "eth0", "mac": "aa:bb:cc:00:00:02", "cidr": "10.0.0.12/24", "default": True},
                            ],
                        },
                    ],
                },
            ],
        },
    ],
}


class FakeMetalClient:
    """In-memory stand-in for ``metal.client.MetalClient``."""

    def __init__(
        self,
        payload: bytes = b"{}",
        fetch_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.payload = payload
        self.fetch_error = fetch_error
        self.close_error = close_error
        self.requests: list[tuple[MetalContext, ReadReportDataRequest]] = []
        self.close_calls = 0

    def context(self) -> MetalContext:
        return MetalContext(token="test-token")

    async def read_report_data(self, ctx: MetalContext, request: ReadReportDataRequest) -> ReadReportDataResponse:
        self.requests.append((ctx, request))
        if self.fetch_error is not None:
            raise self.fetch_error
        return ReadReportDataResponse(data=self.payload)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


class FakeDialer:
    """Async factory handing out ``FakeMetalClient`` instances."""

    def __init__(self, client: Optional[FakeMetalClient] = None, error: Optional[Exception] = None) -> None:
        self.client = client or FakeMetalClient(payload=json.dumps(REPORT_DATA).encode())
        self.error = error
        self.calls = 0

    async def __call__(self) -> FakeMetalClient:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.client


@pytest.fixture
def report_data() -> dict:
    return json.loads(json.dumps(REPORT_DATA))


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A small template set exercising include and the CIDR helpers."""
    (tmp_path / "summary.j2").write_text(
        "{% for zone in zones %}\n"
        "zone {{ zone.name }}: {{ zone.clusters | length }} clusters\n"
        "{% endfor %}\n"
    )
    (tmp_path / "nodes.j2").write_text(
        "{% for host in zones[0].clusters[0].hosts %}\n"
        "[{{ include('node', host) | trim }}]\n"
        "{% endfor %}\n"
    )
    (tmp_path / "node.j2").write_text("{{ name }} {{ address(interfaces[0].cidr) }}/{{ interfaces[0].cidr | netmask }}\n")
    return tmp_path
