import logging
from typing import Iterable, Mapping, Optional, Protocol, runtime_checkable

from ..config import ContextConfig
from ..graph.store import GraphSnapshot
from ..models import CacheEntry, ContextTraversal, RenderedContext, TokenEstimate
from ..render.estimator import TokenEstimator
from ..render.pricing import PricingTable
from ..render.serializer import ContextSerializer
from .activation import ActivationFilter
from .budget import BudgetAllocator
from .cache import ContextCache
from .traversal import TraversalEngine, TraversalMode

logger = logging.getLogger(__name__)


@runtime_checkable
class GraphSource(Protocol):
    """Read side of the graph store consumed by the engine."""

    @property
    def version(self) -> int: ...

    def snapshot(self) -> GraphSnapshot: ...


class ContextEngine:
    """
    Context assembly for a target node.

    Pipeline
    --------
    GraphSnapshot → TraversalEngine (+ ActivationFilter)
                  → BudgetAllocator → ContextCache → ContextSerializer

    The engine performs no I/O and holds no state besides its cache and
    configuration. Every call runs to completion against the snapshot of
    the current graph version.
    """

    def __init__(
        self,
        graph: GraphSource,
        config: Optional[ContextConfig] = None,
        activation: Optional[ActivationFilter] = None,
        pricing: Optional[PricingTable] = None,
    ):
        self._graph = graph
        self._config = config or ContextConfig()
        self._activation = activation or ActivationFilter()
        self._pricing = pricing or PricingTable()

        self._build()

    # ============================================================
    # CONFIGURATION
    # ============================================================

    @property
    def config(self) -> ContextConfig:
        return self._config

    @property
    def pricing(self) -> PricingTable:
        return self._pricing

    def configure(self, config: ContextConfig) -> None:
        """Swap configuration. Cached results are discarded."""
        logger.info("[ENGINE] Reconfigured | %s", config.as_dict())
        self._config = config
        self._build()

    def _build(self) -> None:
        cfg = self._config

        activation = self._activation.with_excluded_kinds(
            self._activation.excluded_kinds | cfg.excluded_kinds
        )

        self.traversal = TraversalEngine(
            activation,
            follow_bidirectional=cfg.follow_bidirectional,
            strength_threshold=cfg.strength_threshold,
        )
        self.allocator = BudgetAllocator()
        self.estimator = TokenEstimator(self._pricing, cfg.estimated_output_tokens)
        self.serializer = ContextSerializer(
            self.estimator,
            section_content_chars=cfg.section_content_chars,
            cost_models=cfg.cost_models,
        )
        self.cache = ContextCache(self._graph, self._compute, cfg.cache_max_entries)

    # ============================================================
    # PIPELINE
    # ============================================================

    def _compute(self, target_id: str) -> CacheEntry:
        cfg = self._config
        snapshot = self._graph.snapshot()

        result = self.traversal.traverse(
            snapshot,
            target_id,
            cfg.max_depth,
            TraversalMode(cfg.traversal_mode),
        )

        allocated = self.allocator.allocate(result.contributors, cfg.max_tokens)

        return CacheEntry(
            target_node_id=target_id,
            graph_version=snapshot.version,
            contributors=tuple(allocated),
            total_tokens=self.allocator.total_tokens(allocated),
        )

    def get_or_compute(self, target_id: str) -> CacheEntry:
        return self.cache.get_or_compute(target_id)

    # ============================================================
    # EXTERNAL INTERFACES
    # ============================================================

    def get_context_traversal_for_node(self, node_id: str) -> ContextTraversal:
        """Structured view for inspection and debugging panels."""
        entry = self.get_or_compute(node_id)
        return ContextTraversal(nodes=entry.contributors, node_count=entry.node_count)

    def get_context_for_node(self, node_id: str) -> str:
        """Flattened context payload, capped at ``context_text_max_chars``."""
        return self.render_for_node(node_id).as_text(self._config.context_text_max_chars)

    def render_for_node(self, node_id: str) -> RenderedContext:
        """Role-tagged sections plus a per-model cost table."""
        entry = self.get_or_compute(node_id)
        return self.serializer.render(self.allocator.rank(entry.contributors))

    def markdown_for_node(self, node_id: str) -> str:
        entry = self.get_or_compute(node_id)
        root = self._graph.snapshot().node(node_id)
        title = root.display_title if root is not None else "Unknown Node"
        return self.serializer.to_markdown(title, entry.contributors)

    def estimate_for_node(
        self,
        node_id: str,
        model: Optional[str] = None,
        messages: Iterable[Mapping[str, str]] = (),
        system_prompt: str = "",
        current_input: str = "",
    ) -> TokenEstimate:
        entry = self.get_or_compute(node_id)
        return self.estimator.build_estimate(
            model,
            contributors=self.allocator.rank(entry.contributors),
            messages=messages,
            system_prompt=system_prompt,
            current_input=current_input,
        )
