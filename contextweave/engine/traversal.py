from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterator, List, Set, Tuple

from ..graph.edges import Edge, EdgeRole, EdgeStrength
from ..graph.nodes import Node
from ..graph.store import GraphSnapshot
from ..models import ContextContributor
from ..render.estimator import estimate_tokens
from .activation import ActivationFilter

logger = logging.getLogger(__name__)


class TraversalMode(str, Enum):
    ALL = "all"
    STRENGTH_THRESHOLD = "strength-threshold"


@dataclass(frozen=True)
class TraversalResult:
    contributors: Tuple[ContextContributor, ...]

    @property
    def count(self) -> int:
        return len(self.contributors)


class TraversalEngine:
    """
    Breadth-first walk of inbound edges from a target node.

    Each call keeps its own visited set, so the engine holds no mutable
    state between calls and is safe to reuse for any number of targets.
    The visited set together with ``max_depth`` bounds the work of a
    single call, including on cyclic graphs.

    Ordering
    --------
    Contributors are emitted in discovery order. Within one expansion,
    inbound edges are considered in creation order, then (optionally)
    outbound bidirectional edges in creation order. Depth is therefore
    non-decreasing along the result.

    Container fan-out
    -----------------
    A contributor whose kind exposes members (see
    ``NodeKind.exposes_members``) emits each member right after itself,
    at its own depth, with the role and strength of the edge that
    admitted the container.
    """

    def __init__(
        self,
        activation: ActivationFilter,
        follow_bidirectional: bool = True,
        strength_threshold: EdgeStrength = EdgeStrength.NORMAL,
    ) -> None:
        self._activation = activation
        self._follow_bidirectional = follow_bidirectional
        self._threshold = EdgeStrength(strength_threshold)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def traverse(
        self,
        snapshot: GraphSnapshot,
        target_id: str,
        max_depth: int,
        mode: TraversalMode = TraversalMode.ALL,
    ) -> TraversalResult:

        mode = TraversalMode(mode)
        max_depth = max(0, int(max_depth))

        if not snapshot.has_node(target_id):
            logger.debug("[TRAVERSAL] Target %s not in snapshot", target_id)
            return TraversalResult(())

        visited: Set[str] = {target_id}
        contributors: List[ContextContributor] = []
        queue: Deque[Tuple[str, int]] = deque([(target_id, 0)])

        while queue:
            node_id, depth = queue.popleft()

            if depth >= max_depth:
                continue

            receiver = snapshot.node(node_id)
            if receiver is None:
                continue

            for edge, source_id in self._candidates(snapshot, node_id):

                if source_id in visited:
                    continue

                if not self._mode_admits(edge, mode):
                    continue

                source = snapshot.node(source_id)
                if source is None:
                    logger.debug(
                        "[TRAVERSAL] Skipping dangling edge %s (missing node %s)",
                        edge.id,
                        source_id,
                    )
                    continue

                if not self._activation.should_include(edge, source, receiver):
                    continue

                visited.add(source_id)
                contributors.append(
                    self._contributor(source, edge.role, edge.strength, depth + 1, edge.id)
                )
                queue.append((source_id, depth + 1))

                for member in self._members(snapshot, source, visited):
                    visited.add(member.id)
                    contributors.append(
                        self._contributor(member, edge.role, edge.strength, depth + 1, None)
                    )
                    queue.append((member.id, depth + 1))

        logger.debug(
            "[TRAVERSAL] target=%s depth=%d mode=%s -> %d contributors",
            target_id,
            max_depth,
            mode.value,
            len(contributors),
        )

        return TraversalResult(tuple(contributors))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _candidates(self, snapshot: GraphSnapshot, node_id: str) -> Iterator[Tuple[Edge, str]]:
        """Yield (edge, contributing node id) pairs feeding ``node_id``."""

        for edge in snapshot.inbound_edges(node_id):
            yield edge, edge.source

        if self._follow_bidirectional:
            for edge in snapshot.outbound_edges(node_id):
                if edge.is_bidirectional:
                    yield edge, edge.target

    def _mode_admits(self, edge: Edge, mode: TraversalMode) -> bool:
        if mode is TraversalMode.ALL:
            return True
        return edge.strength.priority >= self._threshold.priority

    def _members(self, snapshot: GraphSnapshot, container: Node, visited: Set[str]) -> List[Node]:
        """Members of ``container``, nested aggregates flattened in order."""
        members: List[Node] = []
        seen: Set[str] = set()
        pending: Deque[Node] = deque([container])

        while pending:
            current = pending.popleft()

            for member_id in current.members:
                if member_id in visited or member_id in seen:
                    continue

                member = snapshot.node(member_id)
                if member is None:
                    logger.debug(
                        "[TRAVERSAL] Container %s lists missing member %s",
                        current.id,
                        member_id,
                    )
                    continue

                if not self._activation.admits_node(member):
                    continue

                seen.add(member_id)
                members.append(member)

                if member.members:
                    pending.append(member)

        return members

    @staticmethod
    def _contributor(
        node: Node,
        role: EdgeRole,
        strength: EdgeStrength,
        depth: int,
        via_edge_id,
    ) -> ContextContributor:
        content = node.context_text()
        return ContextContributor(
            node_id=node.id,
            kind=node.kind,
            title=node.context_label,
            role=role,
            depth=depth,
            estimated_tokens=estimate_tokens(content),
            strength=strength,
            content=content,
            via_edge_id=via_edge_id,
            context_priority=node.context_priority,
        )
