"""Transport abstraction between the chat client and a concrete HTTP library."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import AsyncIterator, Mapping


@dataclass(slots=True)
class TransportResponse:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class StreamHandle(ABC):
    """An open streaming response. Valid only inside its ``open_stream`` context."""

    status_code: int
    headers: Mapping[str, str]

    @abstractmethod
    def aiter_lines(self) -> AsyncIterator[str]:
        """Yield decoded text lines as they arrive, without trailing newlines."""

    @abstractmethod
    async def aread(self, limit: int) -> bytes:
        """Drain at most ``limit`` bytes of the remaining body."""


class HTTPTransport(ABC):
    """Capabilities the chat client needs from the host HTTP stack.

    Implementations translate connectivity failures: timeouts raise
    ``RequestTimeoutError``, DNS/connect/reset failures raise
    ``NoConnectionError`` and anything else raises ``TransportFailure``.
    """

    @abstractmethod
    async def perform_request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
        timeout: float,
    ) -> TransportResponse:
        pass

    @abstractmethod
    def open_stream(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
        timeout: float,
    ) -> AbstractAsyncContextManager[StreamHandle]:
        """Open a streaming response; leaving the context closes the connection."""

    async def aclose(self) -> None:
        return None


def header_value(headers: Mapping[str, str], target: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == target.lower():
            return value
    return None
