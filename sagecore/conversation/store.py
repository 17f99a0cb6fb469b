"""Persistence collaborator for conversation history."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from itertools import count
from threading import Lock

from pydantic import BaseModel, Field

from sagecore.core.models import ChatTurn, Role


class Conversation(BaseModel):
    id: int
    title: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StoredTurn(BaseModel):
    id: int
    conversation_id: int
    role: Role
    content: str

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content=self.content)


class ConversationNotFoundError(KeyError):
    """Raised when a conversation id is unknown to the store."""


class ConversationStore(ABC):
    @abstractmethod
    def create_conversation(self, title: str | None = None) -> Conversation:
        pass

    @abstractmethod
    def list_conversations(self) -> list[Conversation]:
        """Most recent first."""
        pass

    @abstractmethod
    def get_conversation(self, conversation_id: int) -> Conversation:
        pass

    @abstractmethod
    def set_title(self, conversation_id: int, title: str) -> None:
        pass

    @abstractmethod
    def delete_conversation(self, conversation_id: int) -> None:
        """Delete a conversation together with its turns."""
        pass

    @abstractmethod
    def list_turns(self, conversation_id: int) -> list[StoredTurn]:
        """Turns in the order they were appended."""
        pass

    @abstractmethod
    def append_turn(self, conversation_id: int, turn: ChatTurn) -> StoredTurn:
        pass

    @abstractmethod
    def delete_turn(self, conversation_id: int, turn_id: int) -> bool:
        pass


class InMemoryConversationStore(ConversationStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._conversation_ids = count(1)
        self._turn_ids = count(1)
        self._conversations: dict[int, Conversation] = {}
        self._turns: dict[int, list[StoredTurn]] = {}

    def _require(self, conversation_id: int) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def create_conversation(self, title: str | None = None) -> Conversation:
        with self._lock:
            conversation = Conversation(id=next(self._conversation_ids), title=title)
            self._conversations[conversation.id] = conversation
            self._turns[conversation.id] = []
            return conversation.model_copy()

    def list_conversations(self) -> list[Conversation]:
        with self._lock:
            ordered = sorted(self._conversations.values(), key=lambda item: (item.created_at, item.id), reverse=True)
            return [item.model_copy() for item in ordered]

    def get_conversation(self, conversation_id: int) -> Conversation:
        with self._lock:
            return self._require(conversation_id).model_copy()

    def set_title(self, conversation_id: int, title: str) -> None:
        with self._lock:
            self._require(conversation_id).title = title

    def delete_conversation(self, conversation_id: int) -> None:
        with self._lock:
            self._conversations.pop(conversation_id, None)
            self._turns.pop(conversation_id, None)

    def list_turns(self, conversation_id: int) -> list[StoredTurn]:
        with self._lock:
            self._require(conversation_id)
            return [turn.model_copy() for turn in self._turns[conversation_id]]

    def append_turn(self, conversation_id: int, turn: ChatTurn) -> StoredTurn:
        with self._lock:
            self._require(conversation_id)
            stored = StoredTurn(
                id=next(self._turn_ids),
                conversation_id=conversation_id,
                role=turn.role,
                content=turn.content,
            )
            self._turns[conversation_id].append(stored)
            return stored.model_copy()

    def delete_turn(self, conversation_id: int, turn_id: int) -> bool:
        with self._lock:
            turns = self._turns.get(conversation_id, [])
            for index, stored in enumerate(turns):
                if stored.id == turn_id:
                    del turns[index]
                    return True
            return False
