from __future__ import annotations

import math
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ..models import BreakdownItem, ContextContributor, CostEstimate, TokenEstimate
from .pricing import PricingTable

# Coarse but consistent heuristic shared by the allocator and estimator
CHARS_PER_TOKEN = 4

DEFAULT_OUTPUT_TOKENS = 4096


def estimate_tokens(text: Optional[str]) -> int:
    if not text:
        return 0
    if not isinstance(text, str):
        text = str(text)
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def chars_for_tokens(tokens: int) -> int:
    """Largest character count whose estimate stays within ``tokens``."""
    return max(0, int(tokens)) * CHARS_PER_TOKEN


def usage_level(percentage: float) -> str:
    if percentage < 50:
        return "low"
    if percentage < 75:
        return "medium"
    if percentage < 90:
        return "high"
    return "critical"


def format_cost(cost: float) -> str:
    """Format a USD amount, with more precision for small values."""
    if not isinstance(cost, (int, float)) or math.isnan(cost) or cost == 0:
        return "$0.00"
    if cost < 0.001:
        return "<$0.001"
    if cost < 0.01:
        return f"${cost:.4f}"
    if cost < 0.1:
        return f"${cost:.3f}"
    return f"${cost:.2f}"


def format_token_count(tokens: int) -> str:
    """Compact token count for display: 950, 12.5k, 1.20M."""
    if tokens < 1000:
        return str(tokens)
    if round(tokens / 1000, 1) < 1000:
        return f"{tokens / 1000:.1f}k"
    return f"{tokens / 1_000_000:.2f}M"


class TokenEstimator:
    """
    Token and cost estimates against a pluggable pricing table.

    Used for two things:

    • a per-model cost table for an assembled context (``cost_table``)
    • a full request estimate with a per-source breakdown
      (``build_estimate``), for usage indicators
    """

    def __init__(
        self,
        pricing: Optional[PricingTable] = None,
        output_tokens: int = DEFAULT_OUTPUT_TOKENS,
    ) -> None:
        self._pricing = pricing or PricingTable()
        self._output_tokens = max(0, int(output_tokens))

    @property
    def pricing(self) -> PricingTable:
        return self._pricing

    def cost_table(self, input_tokens: int, models: Iterable[str]) -> Dict[str, CostEstimate]:
        return {
            model: self._pricing.estimate_cost(input_tokens, self._output_tokens, model)
            for model in models
        }

    def build_estimate(
        self,
        model: Optional[str],
        contributors: Sequence[ContextContributor] = (),
        messages: Iterable[Mapping[str, str]] = (),
        system_prompt: str = "",
        current_input: str = "",
        max_output_tokens: Optional[int] = None,
    ) -> TokenEstimate:

        breakdown = []

        system_tokens = estimate_tokens(system_prompt)
        if system_tokens > 0:
            breakdown.append(BreakdownItem("System prompt", system_tokens))

        for c in contributors:
            breakdown.append(BreakdownItem(c.title, c.estimated_tokens, c.node_id))

        message_tokens = sum(estimate_tokens(m.get("content", "")) for m in messages)
        if message_tokens > 0:
            breakdown.append(BreakdownItem("Conversation history", message_tokens))

        draft_tokens = estimate_tokens(current_input)
        if draft_tokens > 0:
            breakdown.append(BreakdownItem("Current message", draft_tokens))

        input_tokens = sum(item.tokens for item in breakdown)

        output_cap = self._output_tokens if max_output_tokens is None else max(0, max_output_tokens)
        output_tokens = min(output_cap, self._output_tokens)

        limit = self._pricing.context_limit(model)
        percentage = min(100.0, (input_tokens / limit) * 100) if limit > 0 else 100.0

        return TokenEstimate(
            model=model or "default",
            input_tokens=input_tokens,
            estimated_output_tokens=output_tokens,
            breakdown=tuple(breakdown),
            cost=self._pricing.estimate_cost(input_tokens, output_tokens, model),
            context_limit=limit,
            usage_percentage=percentage,
            usage_level=usage_level(percentage),
        )
