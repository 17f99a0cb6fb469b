"""Messages API client: buffered exchanges with 5xx backoff and cancellable streaming."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Mapping, Sequence

from sagecore.client.stream import ChatStream
from sagecore.config.settings import settings
from sagecore.core.codec import decode_error_body, decode_response, encode_request, parse_retry_after
from sagecore.core.errors import (
    ChatClientError,
    HTTPStatusError,
    InvalidCredentialError,
    MissingCredentialError,
    RateLimitedError,
    TransportFailure,
)
from sagecore.core.models import ChatTurn, CompletedResponse, OutboundRequest
from sagecore.credentials.base import CredentialStore
from sagecore.observability.logging import log_event
from sagecore.transport.base import HTTPTransport, header_value
from sagecore.transport.httpx_transport import HttpxTransport
from sagecore.util.logger import get_logger

SleepFn = Callable[[float], Awaitable[None]]

logger = get_logger("client")


class ChatClient:
    """Client for the remote Messages API.

    The client holds configuration and its two collaborators only; history is
    passed in on every call, so one instance can serve unrelated conversations
    concurrently. The credential is read from the store before each request and
    not kept afterwards.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        transport: HTTPTransport | None = None,
        *,
        base_url: str | None = None,
        api_version: str | None = None,
        api_key_header: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        request_timeout: float | None = None,
        stream_timeout: float | None = None,
        max_retries: int | None = None,
        max_error_body_bytes: int | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self.credentials = credentials
        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport()
        self.base_url = settings.api_base_url if base_url is None else base_url
        self.api_version = settings.api_version if api_version is None else api_version
        self.api_key_header = settings.api_key_header if api_key_header is None else api_key_header
        self.model = settings.default_model if model is None else model
        self.max_tokens = settings.default_max_tokens if max_tokens is None else max_tokens
        self.request_timeout = float(settings.request_timeout_seconds if request_timeout is None else request_timeout)
        self.stream_timeout = float(settings.stream_timeout_seconds if stream_timeout is None else stream_timeout)
        self.max_retries = settings.max_retries if max_retries is None else max(0, int(max_retries))
        self.max_error_body_bytes = (
            settings.max_error_body_bytes if max_error_body_bytes is None else max_error_body_bytes
        )
        self._sleep = sleep or asyncio.sleep

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self.transport.aclose()

    # request building

    def fetch_credential(self) -> str:
        try:
            secret = self.credentials.get()
        except Exception as exc:
            logger.warning("credential store read failed error=%s", type(exc).__name__)
            raise MissingCredentialError() from exc
        if not secret or not secret.strip():
            raise MissingCredentialError()
        return secret.strip()

    def build_headers(self, secret: str, *, streaming: bool = False) -> dict[str, str]:
        headers = {
            "content-type": "application/json",
            "anthropic-version": self.api_version,
            self.api_key_header: secret,
        }
        if streaming:
            headers["accept"] = "text/event-stream"
        return headers

    def build_request(
        self,
        turns: Sequence[ChatTurn],
        system_prompt: str | None,
        model: str | None,
        max_tokens: int | None,
        *,
        streaming: bool,
    ) -> OutboundRequest:
        return OutboundRequest(
            model=model or self.model,
            max_output_tokens=self.max_tokens if max_tokens is None else max_tokens,
            system_prompt=system_prompt,
            turns=list(turns),
            streaming=streaming,
        )

    def error_for_status(self, status_code: int, headers: Mapping[str, str], body: bytes) -> ChatClientError:
        if status_code == 401:
            error: ChatClientError = InvalidCredentialError()
        elif status_code == 429:
            error = RateLimitedError(parse_retry_after(header_value(headers, "retry-after")))
        else:
            error = HTTPStatusError(status_code, decode_error_body(body))
        log_event("chat.http_error", status=status_code, kind=error.kind)
        return error

    # buffered exchange

    async def send(
        self,
        message: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> CompletedResponse:
        return await self.send_conversation([ChatTurn.user(message)], system_prompt, model, max_tokens)

    async def send_conversation(
        self,
        turns: Sequence[ChatTurn],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> CompletedResponse:
        secret = self.fetch_credential()
        request = self.build_request(turns, system_prompt, model, max_tokens, streaming=False)
        body = encode_request(request)
        headers = self.build_headers(secret)

        attempt = 0
        while True:
            log_event("chat.request", model=request.model, turns=len(request.turns), attempt=attempt)
            try:
                response = await self.transport.perform_request(
                    "POST", self.base_url, headers, body, self.request_timeout
                )
            except ChatClientError:
                raise
            except TransportFailure as exc:
                raise HTTPStatusError(-1, exc.detail) from exc
            except Exception as exc:
                logger.warning("transport raised unclassified error=%s", exc)
                raise HTTPStatusError(-1, str(exc) or type(exc).__name__) from exc

            status = response.status_code
            if 200 <= status < 300:
                completed = decode_response(response.body)
                log_event(
                    "chat.response",
                    model=completed.model_used,
                    stop_reason=completed.stop_reason,
                    input_tokens=completed.usage.input_tokens,
                    output_tokens=completed.usage.output_tokens,
                )
                return completed

            if 500 <= status < 600 and attempt < self.max_retries:
                delay = float(2**attempt)
                log_event("chat.retry", status=status, attempt=attempt, delay=delay)
                await self._sleep(delay)
                attempt += 1
                continue

            raise self.error_for_status(status, response.headers, response.body)

    # streaming exchange

    def stream_conversation(
        self,
        turns: Sequence[ChatTurn],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> ChatStream:
        history = list(turns)
        return ChatStream(
            self,
            lambda: self.build_request(history, system_prompt, model, max_tokens, streaming=True),
        )
