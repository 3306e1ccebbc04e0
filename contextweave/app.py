from typing import Iterable, Optional

from .config import ContextConfig
from .engine.activation import ActivationFilter, ActivationPredicate
from .engine.core import ContextEngine, GraphSource
from .render.pricing import PricingTable


class ContextWeaveApp:
    """
    Top-level facade for constructing a ContextEngine.

    The caller owns the graph store and any activation rules; the
    framework owns traversal, budgeting, caching and rendering. This
    method performs pure assembly: no global state, no registrations.
    """

    @staticmethod
    def create(
        *,
        graph: GraphSource,
        max_depth: int = 2,
        max_tokens: int = 8000,
        traversal_mode: str = "all",
        excluded_kinds: Iterable[str] = (),
        predicate: Optional[ActivationPredicate] = None,
        pricing: Optional[PricingTable] = None,
        **settings,
    ) -> ContextEngine:
        """
        Construct a fully wired ContextEngine.

        Parameters
        ----------
        graph : GraphSource
            Consumer-provided graph store exposing ``version`` and
            ``snapshot()``.

        max_depth, max_tokens, traversal_mode, excluded_kinds
            Context rules; out-of-range values are clamped.

        predicate : Optional[ActivationPredicate]
            Workspace-wide activation rule, evaluated after each edge's
            own predicate.

        pricing : Optional[PricingTable]
            Pricing table for cost estimates. Built-in table if omitted.

        **settings
            Any further ``ContextConfig`` field.
        """

        config = ContextConfig(
            max_depth=max_depth,
            max_tokens=max_tokens,
            traversal_mode=traversal_mode,
            excluded_kinds=excluded_kinds,
            **settings,
        )

        activation = ActivationFilter(predicate=predicate)

        return ContextEngine(graph, config=config, activation=activation, pricing=pricing)
