"""Structured logging bridge for client lifecycle events."""

from __future__ import annotations

import logging

from sagecore.util.logger import get_logger, mask_secret

logger = get_logger("events")
_SECRET_KEYS = {"api_key", "credential", "secret", "token"}


def log_event(event: str, *, level: int = logging.INFO, **payload: object) -> None:
    cleaned = {
        key: (mask_secret(str(value)) if key in _SECRET_KEYS else value)
        for key, value in payload.items()
        if value is not None
    }
    logger.log(level, "event=%s payload=%s", event, cleaned)
