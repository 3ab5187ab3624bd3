"""Tests for the MOPS REST client and the report CLI."""

import sys
from pathlib import Path

import httpx
import pytest

# Add backend directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import run_cli  # noqa: E402
from mops_client import MopsClient, MopsClientError, hex_dump  # noqa: E402
from reports.scope import ReportScope  # noqa: E402


def mock_server(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/report/summary":
            return httpx.Response(200, json={"report": "zone z1: 1 cluster\n"})
        if request.url.path == "/items" and request.method in ("POST", "PUT", "PATCH"):
            return httpx.Response(200, content=request.content)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(500, text="failed to execute template 'nope': template not found")

    return httpx.MockTransport(handler)


def test_hex_dump():
    dump = hex_dump(b"GET / HTTP/1.1\r\n")

    assert dump == "00000000  47 45 54 20 2f 20 48 54 54 50 2f 31 2e 31 0d 0a  |GET / HTTP/1.1..|"


def test_hex_dump_multiple_lines():
    lines = hex_dump(bytes(range(20))).splitlines()

    assert len(lines) == 2
    assert lines[1].startswith("00000010  10 11 12 13")


class TestMopsClient:
    """Tests for MopsClient."""

    @pytest.mark.asyncio
    async def test_get_report(self):
        requests = []
        async with MopsClient("http://mops.test/", transport=mock_server(requests)) as client:
            text = await client.get_report("summary", ReportScope(zone="z1", host="h 1"))

        assert text == "zone z1: 1 cluster\n"
        [request] = requests
        assert str(request.url) == "http://mops.test/report/summary?zone=z1&host=h+1"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status(self):
        async with MopsClient("http://mops.test", transport=mock_server([])) as client:
            with pytest.raises(MopsClientError) as exc_info:
                await client.get_report("nope")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "http error: 500 Internal Server Error"
        assert exc_info.value.body == "failed to execute template 'nope': template not found"

    @pytest.mark.asyncio
    async def test_json_verbs(self):
        requests = []
        async with MopsClient("http://mops.test", transport=mock_server(requests)) as client:
            assert await client.post("/items", {"a": 1}) == {"a": 1}
            assert await client.put("items", [1]) == [1]
            assert await client.patch("items", "x") == "x"
            assert await client.delete("items/1") is None

        assert [r.method for r in requests] == ["POST", "PUT", "PATCH", "DELETE"]
        assert requests[0].headers["Content-Type"] == "application/json"
        assert str(requests[0].url) == "http://mops.test/items"

    @pytest.mark.asyncio
    async def test_debug_dumps_traffic(self, capsys):
        async with MopsClient("http://mops.test", debug=True, transport=mock_server([])) as client:
            await client.get_report("summary")

        out = capsys.readouterr().out
        assert "REQUEST:" in out
        assert "RESPONSE:" in out
        assert "|GET /report/summ" in out


class TestFetchReport:
    """Tests for the CLI report command."""

    @pytest.fixture
    def patched_client(self, monkeypatch):
        requests = []
        transport = mock_server(requests)
        real = run_cli.MopsClient

        def factory(url, **kwargs):
            return real(url, transport=transport, **kwargs)

        monkeypatch.setattr(run_cli, "MopsClient", factory)
        return requests

    @pytest.mark.asyncio
    async def test_raw_output(self, patched_client, capsys):
        code = await run_cli.fetch_report("http://mops.test", "summary", ReportScope(), raw=True, debug=False)

        assert code == 0
        assert capsys.readouterr().out == "zone z1: 1 cluster\n"

    @pytest.mark.asyncio
    async def test_server_error(self, patched_client):
        code = await run_cli.fetch_report("http://mops.test", "nope", ReportScope(), raw=True, debug=False)

        assert code == 1

    @pytest.mark.asyncio
    async def test_unreachable_server(self, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        real = run_cli.MopsClient
        monkeypatch.setattr(
            run_cli, "MopsClient", lambda url, **kw: real(url, transport=httpx.MockTransport(refuse), **kw)
        )

        code = await run_cli.fetch_report("http://mops.test", "summary", ReportScope(), raw=True, debug=False)

        assert code == 1

