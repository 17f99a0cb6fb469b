import json
from typing import Any, Callable

import httpx
import pytest

from sagecore.client.chat_client import ChatClient
from sagecore.credentials.memory_store import MemoryCredentialStore
from sagecore.transport.httpx_transport import HttpxTransport

TEST_KEY = "sk-ant-test-0000-abcd"


def message_body(text: str = "Hello", **overrides: Any) -> dict[str, Any]:
    body = {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "claude-opus-4-6",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }
    body.update(overrides)
    return body


def text_delta(text: str) -> dict[str, Any]:
    return {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}


def sse_body(*events: dict[str, Any], done: bool = False) -> bytes:
    lines: list[str] = []
    for event in events:
        lines.append(f"event: {event.get('type', 'message')}")
        lines.append(f"data: {json.dumps(event)}")
        lines.append("")
    if done:
        lines.append("data: [DONE]")
        lines.append("")
    return ("\n".join(lines) + "\n").encode("utf-8")


def reply_events(*chunks: str) -> list[dict[str, Any]]:
    return [
        {"type": "message_start", "message": {"id": "msg_test", "model": "claude-opus-4-6"}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
        *[text_delta(chunk) for chunk in chunks],
        {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 7}},
        {"type": "message_stop"},
    ]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_client(sleep_recorder: SleepRecorder) -> Callable[..., ChatClient]:
    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        secret: str | None = TEST_KEY,
        credentials: Any = None,
        **kwargs: Any,
    ) -> ChatClient:
        async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("sleep", sleep_recorder)
        return ChatClient(
            credentials if credentials is not None else MemoryCredentialStore(secret),
            HttpxTransport(async_client),
            **kwargs,
        )

    return factory
