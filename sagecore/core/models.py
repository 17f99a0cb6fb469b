"""Chat wire and value models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "ChatTurn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatTurn":
        return cls(role=Role.ASSISTANT, content=content)


class OutboundRequest(BaseModel):
    model: str
    max_output_tokens: int = Field(gt=0)
    system_prompt: str | None = None
    turns: list[ChatTurn] = Field(default_factory=list)
    streaming: bool = False


class Usage(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0


class CompletedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    model_used: str
    stop_reason: str | None = None
    text_content: str = ""
    usage: Usage = Field(default_factory=Usage)


class StreamEventType(str, Enum):
    MESSAGE_START = "message_start"
    CONTENT_DELTA = "content_delta"
    CONTENT_STOP = "content_stop"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"
    UNKNOWN = "unknown"


class StreamEvent(BaseModel):
    type: StreamEventType
    text: str | None = None
    stop_reason: str | None = None

    @property
    def ends_stream(self) -> bool:
        if self.type in {StreamEventType.MESSAGE_STOP, StreamEventType.CONTENT_STOP}:
            return True
        return self.type == StreamEventType.MESSAGE_DELTA and bool(self.stop_reason)
