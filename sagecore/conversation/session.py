"""Conversation session: history in, reply out, persistence through the store."""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from typing import AsyncIterator

from sagecore.client.chat_client import ChatClient
from sagecore.client.stream import StreamState
from sagecore.config.settings import settings
from sagecore.conversation.prompts import TITLE_SYSTEM, clean_title, title_user_prompt
from sagecore.conversation.store import ConversationStore
from sagecore.core.errors import ChatClientError, friendly_message
from sagecore.core.models import ChatTurn, Role
from sagecore.observability.logging import log_event
from sagecore.util.logger import get_logger

logger = get_logger("conversation")


class ConversationSession:
    """Drive one stored conversation through the chat client.

    The user turn is persisted before the request goes out. The assistant
    turn is persisted only once its stream completes; a failed or cancelled
    reply leaves no assistant turn behind and marks the user turn as failed
    so ``retry_failed`` can re-run the exchange.

    After the first completed reply of an untitled conversation a title is
    requested in a background task. That task never affects the exchange that
    triggered it.
    """

    def __init__(
        self,
        client: ChatClient,
        store: ConversationStore,
        conversation_id: int,
        *,
        system_prompt: str | None = None,
        auto_title: bool = True,
        title_max_tokens: int | None = None,
        title_max_chars: int | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.conversation_id = conversation_id
        self.system_prompt = system_prompt
        self.auto_title = auto_title
        self.title_max_tokens = title_max_tokens or settings.title_max_tokens
        self.title_max_chars = title_max_chars or settings.title_max_chars
        self.failed_turn_id: int | None = None
        self.error_message: str | None = None
        self._background: set[asyncio.Task] = set()

    def history(self) -> list[ChatTurn]:
        return [stored.to_turn() for stored in self.store.list_turns(self.conversation_id)]

    async def stream_message(self, text: str) -> AsyncIterator[str]:
        cleaned = text.strip()
        if not cleaned:
            return
        self.error_message = None
        self.failed_turn_id = None
        user_turn = self.store.append_turn(self.conversation_id, ChatTurn.user(cleaned))
        async with aclosing(self._stream_reply(failed_turn_id=user_turn.id)) as chunks:
            async for chunk in chunks:
                yield chunk

    async def send_message(self, text: str) -> str:
        return await _collect(self.stream_message(text))

    async def regenerate(self) -> str:
        """Drop the last assistant turn, if any, and stream a fresh reply."""
        turns = self.store.list_turns(self.conversation_id)
        if turns and turns[-1].role == Role.ASSISTANT:
            self.store.delete_turn(self.conversation_id, turns[-1].id)
            turns = turns[:-1]
        if not turns:
            return ""
        self.error_message = None
        return await _collect(self._stream_reply())

    async def retry_failed(self) -> str:
        self.failed_turn_id = None
        self.error_message = None
        return await _collect(self._stream_reply())

    async def _stream_reply(self, failed_turn_id: int | None = None) -> AsyncIterator[str]:
        stream = self.client.stream_conversation(self.history(), self.system_prompt)
        try:
            async with stream:
                async for chunk in stream:
                    yield chunk
        except ChatClientError as exc:
            self.failed_turn_id = failed_turn_id
            self.error_message = friendly_message(exc)
            log_event("conversation.reply_failed", conversation_id=self.conversation_id, kind=exc.kind)
            raise

        if stream.state != StreamState.COMPLETED:
            return
        self.store.append_turn(self.conversation_id, ChatTurn.assistant(stream.text))
        self._maybe_schedule_title()

    def _maybe_schedule_title(self) -> None:
        if not self.auto_title or self._background:
            return
        if self.store.get_conversation(self.conversation_id).title is not None:
            return
        first_user = next((turn for turn in self.history() if turn.role == Role.USER), None)
        if first_user is None:
            return
        task = asyncio.create_task(self._generate_title(first_user.content))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _generate_title(self, first_message: str) -> None:
        try:
            response = await self.client.send(
                title_user_prompt(first_message),
                system_prompt=TITLE_SYSTEM,
                max_tokens=self.title_max_tokens,
            )
            title = clean_title(response.text_content, self.title_max_chars)
            if not title:
                return
            self.store.set_title(self.conversation_id, title)
            log_event("conversation.titled", conversation_id=self.conversation_id, title=title)
        except Exception as exc:
            # best effort: the reply that triggered this is already stored
            logger.warning("title generation failed conversation=%s error=%s", self.conversation_id, exc)

    async def wait_for_background(self) -> None:
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)


async def _collect(chunks: AsyncIterator[str]) -> str:
    parts: list[str] = []
    async for chunk in chunks:
        parts.append(chunk)
    return "".join(parts)
