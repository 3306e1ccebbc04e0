"""
Context assembly engine.

Exposes:
- ActivationFilter (per-edge inclusion policy)
- TraversalEngine (breadth-first inbound walk)
- BudgetAllocator (token ceiling enforcement)
- ContextCache (per graph version memoization)
- ContextEngine (facade over the whole pipeline)
"""

from .activation import ActivationFilter, ActivationPredicate, all_of
from .traversal import TraversalEngine, TraversalMode, TraversalResult
from .budget import BudgetAllocator
from .cache import ContextCache
from .core import ContextEngine, GraphSource

__all__ = [
    "ActivationFilter",
    "ActivationPredicate",
    "all_of",
    "TraversalEngine",
    "TraversalMode",
    "TraversalResult",
    "BudgetAllocator",
    "ContextCache",
    "ContextEngine",
    "GraphSource",
]
