"""
Rendering of assembled context: role sections, flat text, markdown,
and token/cost estimation against a pricing table.
"""

from .estimator import (
    CHARS_PER_TOKEN,
    TokenEstimator,
    estimate_tokens,
    format_cost,
    format_token_count,
    usage_level,
)
from .pricing import ModelPricing, PricingTable
from .serializer import ContextSerializer

__all__ = [
    "CHARS_PER_TOKEN",
    "TokenEstimator",
    "estimate_tokens",
    "format_cost",
    "format_token_count",
    "usage_level",
    "ModelPricing",
    "PricingTable",
    "ContextSerializer",
]
