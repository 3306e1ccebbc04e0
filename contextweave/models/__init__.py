"""
Transient value objects produced by the context engine.

These dataclasses are the information packets that move between the
engine layers (Traversal, Budget, Cache, Serializer) and out to callers.
None of them is persisted.
"""

from .contributor import ContextContributor
from .cache_entry import CacheEntry
from .rendered import (
    BreakdownItem,
    ContextSection,
    ContextTraversal,
    CostEstimate,
    RenderedContext,
    SectionEntry,
    TokenEstimate,
)

__all__ = [
    "ContextContributor",
    "CacheEntry",
    "BreakdownItem",
    "ContextSection",
    "ContextTraversal",
    "CostEstimate",
    "RenderedContext",
    "SectionEntry",
    "TokenEstimate",
]
