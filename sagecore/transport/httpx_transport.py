"""
httpx-backed transport: buffered POST and line-oriented streaming with error translation.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

import httpx

from sagecore.config.settings import settings
from sagecore.core.errors import NoConnectionError, RequestTimeoutError, TransportFailure
from sagecore.transport.base import HTTPTransport, StreamHandle, TransportResponse
from sagecore.util.logger import get_logger

_CONNECTION_ERRORS = (httpx.NetworkError, httpx.RemoteProtocolError)

logger = get_logger("transport")


def translate_http_error(exc: httpx.HTTPError, url: str) -> Exception:
    detail = (str(exc) or "").strip() or type(exc).__name__
    if isinstance(exc, httpx.TimeoutException):
        logger.warning("transport timeout url=%s error=%s", url, detail)
        return RequestTimeoutError(detail)
    if isinstance(exc, _CONNECTION_ERRORS):
        logger.warning("transport connection_failed url=%s error=%s", url, detail)
        return NoConnectionError(detail)
    logger.warning("transport failure url=%s error=%s", url, detail)
    return TransportFailure(detail)


class _HttpxStreamHandle(StreamHandle):
    def __init__(self, response: httpx.Response, url: str) -> None:
        self._response = response
        self._url = url
        self.status_code = response.status_code
        self.headers = response.headers

    async def aiter_lines(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                yield line
        except httpx.HTTPError as exc:
            raise translate_http_error(exc, self._url) from exc

    async def aread(self, limit: int) -> bytes:
        collected = bytearray()
        try:
            async for chunk in self._response.aiter_bytes():
                collected.extend(chunk)
                if len(collected) >= limit:
                    break
        except httpx.HTTPError as exc:
            raise translate_http_error(exc, self._url) from exc
        return bytes(collected[:limit])


class HttpxTransport(HTTPTransport):
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        connect_timeout: float | None = None,
        max_connections: int | None = None,
        max_keepalive_connections: int | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._client_lock: asyncio.Lock | None = None
        self.connect_timeout = float(
            connect_timeout if connect_timeout is not None else settings.connect_timeout_seconds
        )
        self.max_connections = max_connections or settings.http_max_connections
        self.max_keepalive_connections = max_keepalive_connections or settings.http_max_keepalive_connections

    def _limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=max(1, int(self.max_connections)),
            max_keepalive_connections=max(0, int(self.max_keepalive_connections)),
        )

    def _timeout(self, timeout: float) -> httpx.Timeout:
        return httpx.Timeout(timeout, connect=min(self.connect_timeout, timeout))

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(http2=False, limits=self._limits())
        return self._client

    async def perform_request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
        timeout: float,
    ) -> TransportResponse:
        client = await self._get_client()
        logger.debug("perform_request start url=%s payload_bytes=%d", url, len(body))
        try:
            response = await client.request(
                method,
                url,
                content=body,
                headers=dict(headers),
                timeout=self._timeout(timeout),
            )
        except httpx.HTTPError as exc:
            raise translate_http_error(exc, url) from exc
        logger.debug("perform_request done url=%s status=%s", url, response.status_code)
        return TransportResponse(status_code=response.status_code, headers=response.headers, body=response.content)

    @asynccontextmanager
    async def open_stream(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
        timeout: float,
    ) -> AsyncIterator[StreamHandle]:
        client = await self._get_client()
        request = client.build_request(
            method,
            url,
            content=body,
            headers=dict(headers),
            timeout=self._timeout(timeout),
        )
        logger.debug("open_stream start url=%s payload_bytes=%d", url, len(body))
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise translate_http_error(exc, url) from exc
        logger.debug("open_stream connected url=%s status=%s", url, response.status_code)
        try:
            yield _HttpxStreamHandle(response, url)
        finally:
            await response.aclose()
            logger.debug("open_stream closed url=%s", url)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
