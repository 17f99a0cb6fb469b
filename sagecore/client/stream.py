"""Cancellable streaming exchange.

A ``ChatStream`` is returned by ``ChatClient.stream_conversation`` without any
I/O having happened. Work starts on the first ``__anext__``; credential and
HTTP failures are raised from there, never from the call that created the
stream. Each stream runs through

    IDLE -> CREDENTIAL_FETCH -> CONNECTING -> STREAMING -> COMPLETED | FAILED | CANCELLED

and never leaves a terminal state. Leaving an ``async with`` block, calling
``cancel()``/``aclose()`` or cancelling the consuming task closes the HTTP
response before control returns.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, AsyncGenerator, Callable

from sagecore.core.codec import LINE_DONE, LINE_IGNORE, encode_request, parse_stream_line
from sagecore.core.errors import ChatClientError, HTTPStatusError, TransportFailure
from sagecore.core.models import OutboundRequest
from sagecore.observability.logging import log_event
from sagecore.util.logger import get_logger

if TYPE_CHECKING:
    from sagecore.client.chat_client import ChatClient

logger = get_logger("client")


class StreamState(str, Enum):
    IDLE = "idle"
    CREDENTIAL_FETCH = "credential_fetch"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED})


class ChatStream:
    def __init__(self, client: "ChatClient", build_request: Callable[[], OutboundRequest]) -> None:
        self._client = client
        self._build_request = build_request
        self._state = StreamState.IDLE
        self._error: BaseException | None = None
        self._chunks: list[str] = []
        self._cancelled = False
        self._pulling = False
        self._producer: AsyncGenerator[str, None] | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    def done(self) -> bool:
        return self._state in TERMINAL_STATES

    def _transition(self, new_state: StreamState) -> None:
        if self._state in TERMINAL_STATES:
            return
        logger.debug("chat stream state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        if new_state in TERMINAL_STATES:
            log_event(
                "chat.stream.end",
                state=new_state.value,
                chunks=len(self._chunks),
                chars=sum(len(chunk) for chunk in self._chunks),
                error=getattr(self._error, "kind", None),
            )

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> str:
        if self._state in TERMINAL_STATES:
            raise StopAsyncIteration
        if self._producer is None:
            self._producer = self._produce()

        self._pulling = True
        try:
            chunk = await self._producer.__anext__()
        except StopAsyncIteration:
            self._transition(StreamState.CANCELLED if self._cancelled else StreamState.COMPLETED)
            raise
        except asyncio.CancelledError:
            self._cancelled = True
            self._transition(StreamState.CANCELLED)
            raise
        except Exception as exc:
            self._error = exc
            self._transition(StreamState.FAILED)
            raise
        finally:
            self._pulling = False

        if self._cancelled:
            await self._close_producer()
            self._transition(StreamState.CANCELLED)
            raise StopAsyncIteration
        self._chunks.append(chunk)
        return chunk

    async def _close_producer(self) -> None:
        if self._producer is not None:
            await self._producer.aclose()

    async def cancel(self) -> None:
        """Stop the exchange. Not an error: iteration simply ends."""
        if self._state in TERMINAL_STATES:
            return
        self._cancelled = True
        if self._pulling:
            # the consumer observes the flag at the next received line
            return
        await self._close_producer()
        self._transition(StreamState.CANCELLED)

    async def aclose(self) -> None:
        await self.cancel()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()

    async def collect(self) -> str:
        """Drain the stream and return the full reply text."""
        async for _ in self:
            pass
        return self.text

    async def _produce(self) -> AsyncGenerator[str, None]:
        client = self._client
        self._transition(StreamState.CREDENTIAL_FETCH)
        secret = client.fetch_credential()
        request = self._build_request()
        if self._cancelled:
            return

        self._transition(StreamState.CONNECTING)
        body = encode_request(request)
        headers = client.build_headers(secret, streaming=True)
        log_event("chat.stream.start", model=request.model, turns=len(request.turns), timeout=client.stream_timeout)

        try:
            async with client.transport.open_stream(
                "POST", client.base_url, headers, body, client.stream_timeout
            ) as handle:
                if handle.status_code != 200:
                    raw = await handle.aread(client.max_error_body_bytes)
                    raise client.error_for_status(handle.status_code, handle.headers, raw)

                self._transition(StreamState.STREAMING)
                async for line in handle.aiter_lines():
                    if self._cancelled:
                        return
                    parsed = parse_stream_line(line)
                    if parsed.kind == LINE_DONE:
                        return
                    if parsed.kind == LINE_IGNORE or parsed.event is None:
                        continue
                    if parsed.event.text:
                        yield parsed.event.text
                    if parsed.event.ends_stream:
                        return
        except ChatClientError:
            raise
        except TransportFailure as exc:
            raise HTTPStatusError(-1, exc.detail) from exc
        except Exception as exc:
            logger.warning("stream transport raised unclassified error=%s", exc)
            raise HTTPStatusError(-1, str(exc) or type(exc).__name__) from exc
