"""Prompts for the conversation title helper."""

from __future__ import annotations

TITLE_SYSTEM = (
    "You write short titles for coaching conversations. "
    "Reply with a title of at most six words. No quotes, no trailing punctuation."
)

_QUOTES = "\"'"


def title_user_prompt(first_message: str) -> str:
    return f"Write a title for a conversation that starts with this message:\n\n{first_message.strip()}"


def clean_title(raw: str, max_chars: int = 80) -> str:
    title = raw.strip().strip(_QUOTES)
    return title[:max_chars].strip()
