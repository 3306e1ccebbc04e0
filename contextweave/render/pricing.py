from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Dict, List, Mapping, Optional, TypeVar

from ..models import CostEstimate

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"

T = TypeVar("T")


@dataclass(frozen=True)
class ModelPricing:
    """USD per one million tokens."""

    input_per_million: float
    output_per_million: float

    def __post_init__(self):
        if self.input_per_million < 0 or self.output_per_million < 0:
            raise ValueError("Pricing rates cannot be negative.")


DEFAULT_MODEL_PRICING: Dict[str, ModelPricing] = {
    # Anthropic
    "claude-3-opus": ModelPricing(15, 75),
    "claude-3-sonnet": ModelPricing(3, 15),
    "claude-3-haiku": ModelPricing(0.25, 1.25),
    "claude-3.5-sonnet": ModelPricing(3, 15),
    "claude-3.5-haiku": ModelPricing(0.8, 4),
    "claude-3-5-sonnet": ModelPricing(3, 15),
    "claude-3-5-haiku": ModelPricing(0.8, 4),
    "claude-sonnet-4": ModelPricing(3, 15),
    "claude-opus-4": ModelPricing(15, 75),
    # OpenAI
    "gpt-4-turbo": ModelPricing(10, 30),
    "gpt-4": ModelPricing(30, 60),
    "gpt-4o": ModelPricing(2.5, 10),
    "gpt-4o-mini": ModelPricing(0.15, 0.6),
    "gpt-3.5-turbo": ModelPricing(0.5, 1.5),
    # Google
    "gemini-pro": ModelPricing(0.5, 1.5),
    "gemini-1.5-pro": ModelPricing(3.5, 10.5),
    "gemini-1.5-flash": ModelPricing(0.075, 0.3),
    "gemini-2.0-flash": ModelPricing(0.1, 0.4),
    DEFAULT_KEY: ModelPricing(3, 15),
}

DEFAULT_CONTEXT_LIMITS: Dict[str, int] = {
    "claude-3-opus": 200000,
    "claude-3-sonnet": 200000,
    "claude-3-haiku": 200000,
    "claude-3.5-sonnet": 200000,
    "claude-3.5-haiku": 200000,
    "claude-3-5-sonnet": 200000,
    "claude-3-5-haiku": 200000,
    "claude-sonnet-4": 200000,
    "claude-opus-4": 200000,
    "gpt-4-turbo": 128000,
    "gpt-4": 8192,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-3.5-turbo": 16385,
    "gemini-pro": 32000,
    "gemini-1.5-pro": 1000000,
    "gemini-1.5-flash": 1000000,
    "gemini-2.0-flash": 1000000,
    DEFAULT_KEY: 100000,
}


class PricingTable:
    """
    Maps model-name patterns to pricing and context-window sizes.

    Lookup order for a model name:
        1. exact pattern match
        2. case-insensitive substring match (longest pattern wins)
        3. the ``default`` entry

    Unrecognized models never fail; they get the default entry.
    """

    def __init__(
        self,
        pricing: Optional[Mapping[str, ModelPricing]] = None,
        context_limits: Optional[Mapping[str, int]] = None,
    ) -> None:
        self._pricing: Dict[str, ModelPricing] = dict(
            DEFAULT_MODEL_PRICING if pricing is None else pricing
        )
        self._limits: Dict[str, int] = dict(
            DEFAULT_CONTEXT_LIMITS if context_limits is None else context_limits
        )
        self._lock = RLock()

        self._pricing.setdefault(DEFAULT_KEY, DEFAULT_MODEL_PRICING[DEFAULT_KEY])
        self._limits.setdefault(DEFAULT_KEY, DEFAULT_CONTEXT_LIMITS[DEFAULT_KEY])

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        pattern: str,
        pricing: ModelPricing,
        context_limit: Optional[int] = None,
    ) -> str:
        """Add or replace a pattern. Returns "registered" or "updated"."""

        if not pattern or not isinstance(pattern, str):
            raise ValueError("Pricing pattern must be a non-empty string.")

        with self._lock:
            result = "updated" if pattern in self._pricing else "registered"
            self._pricing[pattern] = pricing
            if context_limit is not None:
                self._limits[pattern] = int(context_limit)

        logger.info("[PRICING] %s pattern '%s'", result.capitalize(), pattern)
        return result

    def patterns(self) -> List[str]:
        with self._lock:
            return sorted(k for k in self._pricing if k != DEFAULT_KEY)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def pricing_for(self, model: Optional[str]) -> ModelPricing:
        with self._lock:
            return _lookup(self._pricing, model)

    def context_limit(self, model: Optional[str]) -> int:
        with self._lock:
            return _lookup(self._limits, model)

    def estimate_cost(self, input_tokens: int, output_tokens: int, model: Optional[str]) -> CostEstimate:
        pricing = self.pricing_for(model)
        return CostEstimate(
            input_cost=(input_tokens / 1_000_000) * pricing.input_per_million,
            output_cost=(output_tokens / 1_000_000) * pricing.output_per_million,
        )


def _lookup(table: Mapping[str, T], model: Optional[str]) -> T:
    fallback = table[DEFAULT_KEY]

    if not model:
        return fallback

    exact = table.get(model)
    if exact is not None:
        return exact

    lower = model.lower()
    matches = [
        key for key in table
        if key != DEFAULT_KEY and key.lower() in lower
    ]

    if not matches:
        return fallback

    # Longest pattern is the most specific
    best = max(matches, key=len)
    return table[best]
