"""
Messages API codec: request encoding, whole-body decoding and per-line SSE parsing.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from sagecore.core.errors import DecodingFailedError, UnexpectedShapeError
from sagecore.core.models import (
    CompletedResponse,
    OutboundRequest,
    StreamEvent,
    StreamEventType,
    Usage,
)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

LINE_IGNORE = "ignore"
LINE_DONE = "done"
LINE_EVENT = "event"


@dataclass(slots=True)
class StreamLine:
    kind: str
    event: StreamEvent | None = None


_IGNORED = StreamLine(kind=LINE_IGNORE)
_DONE = StreamLine(kind=LINE_DONE)


def request_payload(request: OutboundRequest) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": request.model,
        "max_tokens": request.max_output_tokens,
    }
    if request.system_prompt is not None:
        payload["system"] = request.system_prompt
    payload["messages"] = [{"role": turn.role.value, "content": turn.content} for turn in request.turns]
    if request.streaming:
        payload["stream"] = True
    return payload


def encode_request(request: OutboundRequest) -> bytes:
    return json.dumps(request_payload(request), ensure_ascii=False).encode("utf-8")


_JSON_ERRORS = (json.JSONDecodeError, UnicodeDecodeError, RecursionError)


def _load_json(body: bytes | str) -> Any:
    text = body.decode("utf-8") if isinstance(body, bytes) else body
    return json.loads(text)


def _token_count(raw_usage: dict[str, Any], key: str) -> int:
    value = raw_usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodingFailedError(f"invalid usage: {key}={value!r}")
    return value


def _join_text_segments(content: list[Any]) -> str:
    parts: list[str] = []
    for segment in content:
        if not isinstance(segment, dict):
            continue
        if segment.get("type") == "text" and isinstance(segment.get("text"), str):
            parts.append(segment["text"])
    return "".join(parts)


def decode_response(body: bytes | str) -> CompletedResponse:
    """Decode a non-streaming Messages API body.

    Only ``text`` segments contribute to ``text_content``; segments of any
    other type (tool use, thinking, future additions) are skipped.
    """
    try:
        data = _load_json(body)
    except json.JSONDecodeError as exc:
        raise DecodingFailedError(f"invalid JSON: {exc.msg}") from exc
    except (UnicodeDecodeError, RecursionError) as exc:
        raise DecodingFailedError(f"unreadable body: {type(exc).__name__}") from exc

    if not isinstance(data, dict):
        raise UnexpectedShapeError(f"expected object, got {type(data).__name__}")

    try:
        response_id = data["id"]
        model_used = data["model"]
        content = data["content"]
        raw_usage = data["usage"]
    except KeyError as exc:
        raise DecodingFailedError(f"missing field {exc.args[0]!r}") from exc

    if not isinstance(response_id, str) or not isinstance(model_used, str):
        raise DecodingFailedError("id and model must be strings")
    if not isinstance(content, list):
        raise DecodingFailedError("content must be a list")
    if not isinstance(raw_usage, dict):
        raise DecodingFailedError("usage must be an object")

    stop_reason = data.get("stop_reason")
    usage = Usage(
        input_tokens=_token_count(raw_usage, "input_tokens"),
        output_tokens=_token_count(raw_usage, "output_tokens"),
    )

    return CompletedResponse(
        id=response_id,
        model_used=model_used,
        stop_reason=stop_reason if isinstance(stop_reason, str) else None,
        text_content=_join_text_segments(content),
        usage=usage,
    )


def decode_error_body(body: bytes | str) -> str | None:
    """Return ``error.message`` from a ``{type, error: {type, message}}`` body, else None."""
    try:
        data = _load_json(body)
    except _JSON_ERRORS:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    return message if isinstance(message, str) else None


def classify_event(event: dict[str, Any]) -> StreamEvent:
    event_type = str(event.get("type") or "")
    if event_type == "message_start":
        return StreamEvent(type=StreamEventType.MESSAGE_START)
    if event_type == "content_block_delta":
        delta = event.get("delta")
        if isinstance(delta, dict) and delta.get("type") == "text_delta":
            text = delta.get("text")
            return StreamEvent(type=StreamEventType.CONTENT_DELTA, text=text if isinstance(text, str) else "")
        # input_json_delta, thinking_delta, ...: a delta with no text for us
        return StreamEvent(type=StreamEventType.CONTENT_DELTA, text="")
    if event_type == "content_block_stop":
        return StreamEvent(type=StreamEventType.CONTENT_STOP)
    if event_type == "message_delta":
        delta = event.get("delta")
        stop_reason = delta.get("stop_reason") if isinstance(delta, dict) else None
        return StreamEvent(
            type=StreamEventType.MESSAGE_DELTA,
            stop_reason=stop_reason if isinstance(stop_reason, str) and stop_reason else None,
        )
    if event_type == "message_stop":
        return StreamEvent(type=StreamEventType.MESSAGE_STOP)
    return StreamEvent(type=StreamEventType.UNKNOWN)


def extract_data_payload(line: str) -> str | None:
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None
    return stripped[len(DATA_PREFIX):].strip()


def parse_stream_line(line: str) -> StreamLine:
    payload = extract_data_payload(line)
    if payload is None:
        return _IGNORED
    if payload == DONE_SENTINEL:
        return _DONE
    try:
        event = json.loads(payload)
    except (json.JSONDecodeError, RecursionError):
        return _IGNORED
    if not isinstance(event, dict):
        return _IGNORED
    return StreamLine(kind=LINE_EVENT, event=classify_event(event))


def parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds
