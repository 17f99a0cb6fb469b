"""Approximate USD cost of an exchange from its token usage.

Informational only; list prices drift and billing is authoritative.
"""

from __future__ import annotations

from sagecore.config.pricing import model_rates
from sagecore.core.models import Usage

TOKENS_PER_MILLION = 1_000_000


def estimate_cost(usage: Usage, model: str | None = None, *, pricing_path: str | None = None) -> float:
    input_rate, output_rate = model_rates(model, pricing_path)
    input_cost = usage.input_tokens / TOKENS_PER_MILLION * input_rate
    output_cost = usage.output_tokens / TOKENS_PER_MILLION * output_rate
    return input_cost + output_cost


def format_cost(cost: float) -> str:
    return f"${cost:.4f}"
