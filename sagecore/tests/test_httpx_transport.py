import asyncio

import httpx
import pytest

from sagecore.core.errors import NoConnectionError, RequestTimeoutError, TransportFailure
from sagecore.transport.base import header_value
from sagecore.transport.httpx_transport import HttpxTransport, translate_http_error


def test_perform_request_returns_status_headers_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.content == b'{"a":1}'
        assert request.headers["x-test"] == "1"
        return httpx.Response(201, headers={"Retry-After": "3"}, content=b"created")

    async def run_case():
        async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpxTransport(async_client)
        result = await transport.perform_request("POST", "https://api.example.com/x", {"x-test": "1"}, b'{"a":1}', 5.0)
        await async_client.aclose()
        return result

    result = asyncio.run(run_case())
    assert result.status_code == 201
    assert result.body == b"created"
    assert header_value(result.headers, "retry-after") == "3"


def test_open_stream_yields_lines_lazily():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"data: one\n\ndata: two\n")

    async def run_case():
        async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = HttpxTransport(async_client)
        async with transport.open_stream("POST", "https://api.example.com/x", {}, b"{}", 5.0) as handle:
            status = handle.status_code
            lines = [line async for line in handle.aiter_lines()]
        await async_client.aclose()
        return status, lines

    status, lines = asyncio.run(run_case())
    assert status == 200
    assert [line for line in lines if line] == ["data: one", "data: two"]


def test_transport_does_not_close_injected_client():
    async def run_case():
        async_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        transport = HttpxTransport(async_client)
        await transport.aclose()
        closed = async_client.is_closed
        await async_client.aclose()
        return closed

    assert asyncio.run(run_case()) is False


def test_owned_client_is_created_once_and_closed():
    async def run_case():
        transport = HttpxTransport(max_connections=2, max_keepalive_connections=1)
        first = await transport._get_client()
        second = await transport._get_client()
        await transport.aclose()
        return first, second

    first, second = asyncio.run(run_case())
    assert first is second
    assert first.is_closed


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (httpx.ConnectTimeout("connect timed out"), RequestTimeoutError),
        (httpx.ReadTimeout("read timed out"), RequestTimeoutError),
        (httpx.PoolTimeout("pool timed out"), RequestTimeoutError),
        (httpx.ConnectError("dns failure"), NoConnectionError),
        (httpx.ReadError("connection reset by peer"), NoConnectionError),
        (httpx.RemoteProtocolError("server disconnected"), NoConnectionError),
        (httpx.UnsupportedProtocol("ftp"), TransportFailure),
        (httpx.DecodingError("bad gzip"), TransportFailure),
    ],
)
def test_translate_http_error(exc, expected):
    translated = translate_http_error(exc, "https://api.example.com/x")
    assert isinstance(translated, expected)


def test_transport_failure_keeps_detail():
    translated = translate_http_error(httpx.UnsupportedProtocol("unknown scheme ftp"), "ftp://x")
    assert translated.detail == "unknown scheme ftp"
