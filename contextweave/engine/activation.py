from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, runtime_checkable

from ..graph.edges import Edge
from ..graph.nodes import Node, NodeKind

logger = logging.getLogger(__name__)


@runtime_checkable
class ActivationPredicate(Protocol):
    """
    Pluggable rule deciding whether an edge currently contributes.

    Receives the edge, the node that would contribute context and the
    node that would receive it. Concrete rule kinds (proximity, cluster
    size, dependency completion, ...) are supplied by collaborators.
    """

    def __call__(self, edge: Edge, source: Node, target: Node) -> bool: ...


class ActivationFilter:
    """
    Per-edge gate consulted by the traversal engine.

    An excluded edge prunes its branch: the contributing node is not
    emitted and its own inbound edges are never explored through it.

    Exclusion rules, in evaluation order
    ------------------------------------
    • edge disabled
    • contributing node opted out of context
    • contributing node kind globally excluded
    • the edge's own predicate returns False
    • the filter-wide predicate returns False

    A predicate that raises is logged and treated as exclusion.
    """

    def __init__(
        self,
        excluded_kinds: Iterable[NodeKind] = (),
        predicate: Optional[ActivationPredicate] = None,
    ) -> None:
        self._excluded_kinds = frozenset(NodeKind(k) for k in excluded_kinds)
        self._predicate = predicate

    @property
    def excluded_kinds(self) -> frozenset:
        return self._excluded_kinds

    def with_excluded_kinds(self, excluded_kinds: Iterable[NodeKind]) -> "ActivationFilter":
        return ActivationFilter(excluded_kinds, self._predicate)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def should_include(self, edge: Edge, source: Node, target: Node) -> bool:

        if not edge.enabled:
            logger.debug("[ACTIVATION] Edge %s disabled", edge.id)
            return False

        if not self.admits_node(source):
            return False

        if edge.predicate is not None and not self._evaluate(edge.predicate, edge, source, target):
            return False

        if self._predicate is not None and not self._evaluate(self._predicate, edge, source, target):
            return False

        return True

    def admits_node(self, node: Node) -> bool:
        """
        Node-level part of the policy.

        Also applied to container members, which are reached through
        membership rather than an edge.
        """
        if not node.include_in_context:
            logger.debug("[ACTIVATION] Node %s opted out of context", node.id)
            return False

        if node.kind in self._excluded_kinds:
            logger.debug("[ACTIVATION] Node %s kind %s excluded", node.id, node.kind.value)
            return False

        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _evaluate(predicate, edge: Edge, source: Node, target: Node) -> bool:
        try:
            return bool(predicate(edge, source, target))
        except Exception:
            logger.warning(
                "[ACTIVATION] Predicate failed for edge %s, excluding it",
                edge.id,
                exc_info=True,
            )
            return False


def all_of(*predicates: ActivationPredicate) -> ActivationPredicate:
    """Combine predicates; the edge is active only if every one agrees."""

    def combined(edge: Edge, source: Node, target: Node) -> bool:
        return all(p(edge, source, target) for p in predicates)

    return combined
