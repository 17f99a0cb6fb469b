"""Token pricing table loader with mtime-based cache."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from threading import Lock
from typing import Any

import yaml

from sagecore.config.settings import settings
from sagecore.util.logger import get_logger

logger = get_logger("config")


_DEFAULT_PRICING: dict[str, Any] = {
    "default": {"input": 15.0, "output": 75.0},
    "models": {
        "claude-opus-4-6": {"input": 15.0, "output": 75.0},
    },
}

_CACHE_LOCK = Lock()
_CACHE_PATH = ""
_CACHE_MTIME_NS = -1
_CACHE_PRICING: dict[str, Any] | None = None


def _resolve_pricing_file(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    app_root = Path(__file__).resolve().parents[2]
    candidates = [Path.cwd() / candidate, app_root / candidate]
    for item in candidates:
        if item.exists():
            return item.resolve()
    return candidates[-1].resolve()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = _deep_merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def load_pricing(path: str | None = None) -> dict[str, Any]:
    global _CACHE_PATH, _CACHE_MTIME_NS, _CACHE_PRICING

    pricing_path = _resolve_pricing_file(path or settings.pricing_rules_path)
    path_key = str(pricing_path)
    mtime_ns = pricing_path.stat().st_mtime_ns if pricing_path.exists() else -1

    with _CACHE_LOCK:
        if _CACHE_PRICING is not None and _CACHE_PATH == path_key and _CACHE_MTIME_NS == mtime_ns:
            return deepcopy(_CACHE_PRICING)

        pricing = deepcopy(_DEFAULT_PRICING)
        if pricing_path.exists():
            raw = yaml.safe_load(pricing_path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"pricing file must be a mapping: {pricing_path}")
            pricing = _deep_merge(pricing, raw)
            logger.info("pricing loaded path=%s", pricing_path)
        else:
            logger.info("pricing file not found, using defaults path=%s", pricing_path)

        _CACHE_PATH = path_key
        _CACHE_MTIME_NS = mtime_ns
        _CACHE_PRICING = pricing
        return deepcopy(pricing)


def model_rates(model: str | None, path: str | None = None) -> tuple[float, float]:
    """Return ``(input, output)`` USD per million tokens for ``model``."""
    pricing = load_pricing(path)
    entry = pricing.get("models", {}).get(model or settings.default_model) or pricing.get("default", {})
    return float(entry.get("input", 0.0)), float(entry.get("output", 0.0))
