from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .edges import Edge
from .nodes import Node

logger = logging.getLogger(__name__)


class GraphSnapshot:
    """
    Read-only, point-in-time view of the workspace graph.

    Built once per graph version and shared by every traversal run
    against that version. Edge lists preserve creation order, which the
    traversal relies on for deterministic tie-breaking.
    """

    def __init__(
        self,
        version: int,
        nodes: Mapping[str, Node],
        edges: Iterable[Edge],
    ) -> None:
        self._version = version
        self._nodes: Dict[str, Node] = dict(nodes)
        self._edges: Tuple[Edge, ...] = tuple(edges)

        inbound: Dict[str, List[Edge]] = {}
        outbound: Dict[str, List[Edge]] = {}

        for edge in self._edges:
            inbound.setdefault(edge.target, []).append(edge)
            outbound.setdefault(edge.source, []).append(edge)

        self._inbound = {k: tuple(v) for k, v in inbound.items()}
        self._outbound = {k: tuple(v) for k, v in outbound.items()}

    @property
    def version(self) -> int:
        return self._version

    def node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def nodes(self) -> Iterable[Node]:
        return self._nodes.values()

    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    def inbound_edges(self, node_id: str) -> Tuple[Edge, ...]:
        return self._inbound.get(node_id, ())

    def outbound_edges(self, node_id: str) -> Tuple[Edge, ...]:
        return self._outbound.get(node_id, ())

    def __len__(self) -> int:
        return len(self._nodes)


class GraphStore:
    """
    In-memory owner of workspace nodes and edges.

    Every structural mutation (node or edge add, update, delete, bulk
    load) advances a single monotonically increasing ``version``. The
    counter is global, not scoped to the touched subgraph: consumers
    such as the context cache treat any change as invalidating
    everything derived from an older version.

    Nodes and edges are immutable; updates replace them. Edges may point
    at node ids the store does not know (yet, or any more). Readers are
    expected to skip such dangling endpoints.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._version: int = 0
        self._snapshot: Optional[GraphSnapshot] = None
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Version
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    def _bump(self) -> None:
        self._version += 1
        self._snapshot = None

    def snapshot(self) -> GraphSnapshot:
        """Return the read-only view for the current version."""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = GraphSnapshot(
                    self._version, self._nodes, self._edges.values()
                )
            return self._snapshot

    # ------------------------------------------------------------------
    # Node Operations
    # ------------------------------------------------------------------

    def add_node(
        self,
        kind,
        title: str = "",
        content: Optional[Dict[str, Any]] = None,
        *,
        node_id: Optional[str] = None,
        member_ids: Iterable[str] = (),
        include_in_context: bool = True,
    ) -> str:
        """
        Create a node and return its id.

        A fresh uuid is used when ``node_id`` is not supplied.
        """
        node = Node(
            id=node_id or str(uuid.uuid4()),
            kind=kind,
            title=title,
            content=dict(content) if isinstance(content, Mapping) else content,
            include_in_context=include_in_context,
            member_ids=tuple(member_ids),
        )
        self.put_node(node)
        return node.id

    def put_node(self, node: Node) -> None:
        with self._lock:
            if node.id in self._nodes:
                raise ValueError(f"Node '{node.id}' already exists.")

            self._nodes[node.id] = node
            self._bump()

        logger.debug("[GRAPH STORE] Node added | id=%s | version=%d", node.id, self._version)

    def update_node(self, node_id: str, **changes: Any) -> Node:
        """Replace a node with a copy carrying ``changes``."""
        with self._lock:
            current = self.get_node(node_id)

            if "id" in changes and changes["id"] != node_id:
                raise ValueError("Node id cannot be changed.")

            changes.setdefault("updated_at", time.time())
            updated = dataclasses.replace(current, **changes)

            self._nodes[node_id] = updated
            self._bump()

        return updated

    def remove_node(self, node_id: str) -> Tuple[Node, List[Edge]]:
        """Remove a node and every edge touching it."""
        removed_nodes, removed_edges = self.remove_nodes([node_id])
        if not removed_nodes:
            raise KeyError(f"Node '{node_id}' not found.")
        return removed_nodes[0], removed_edges

    def remove_nodes(self, node_ids: List[str]) -> Tuple[List[Node], List[Edge]]:
        """
        Remove nodes and all connected edges.

        Unknown ids are ignored. Returns the removed nodes and edges.
        """
        removed_nodes: List[Node] = []
        removed_edges: List[Edge] = []
        doomed = set(node_ids)

        with self._lock:
            for nid in node_ids:
                node = self._nodes.pop(nid, None)
                if node:
                    removed_nodes.append(node)

            remaining: Dict[str, Edge] = {}
            for edge_id, edge in self._edges.items():
                if edge.source in doomed or edge.target in doomed:
                    removed_edges.append(edge)
                else:
                    remaining[edge_id] = edge

            self._edges = remaining

            if removed_nodes or removed_edges:
                self._bump()

        return removed_nodes, removed_edges

    def get_node(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Node '{node_id}' not found.") from None

    def nodes(self) -> Iterable[Node]:
        return list(self._nodes.values())

    # ------------------------------------------------------------------
    # Edge Operations
    # ------------------------------------------------------------------

    def add_edge(
        self,
        source: str,
        target: str,
        *,
        edge_id: Optional[str] = None,
        **attributes: Any,
    ) -> str:
        """
        Add a directed link ``source -> target`` and return its id.

        ``attributes`` are passed to :class:`Edge` (role, strength,
        predicate, enabled, direction, weight).
        """
        edge = Edge(
            id=edge_id or str(uuid.uuid4()),
            source=source,
            target=target,
            **attributes,
        )
        self.put_edge(edge)
        return edge.id

    def put_edge(self, edge: Edge) -> None:
        with self._lock:
            if edge.id in self._edges:
                raise ValueError(f"Edge '{edge.id}' already exists.")

            if edge.source not in self._nodes or edge.target not in self._nodes:
                logger.debug(
                    "[GRAPH STORE] Edge %s references unknown node (%s -> %s)",
                    edge.id,
                    edge.source,
                    edge.target,
                )

            self._edges[edge.id] = edge
            self._bump()

    def update_edge(self, edge_id: str, **changes: Any) -> Edge:
        """
        Replace an edge with a copy carrying ``changes``.

        The edge keeps its position in creation order.
        """
        with self._lock:
            current = self.get_edge(edge_id)

            if "id" in changes and changes["id"] != edge_id:
                raise ValueError("Edge id cannot be changed.")

            updated = dataclasses.replace(current, **changes)

            self._edges[edge_id] = updated
            self._bump()

        return updated

    def remove_edge(self, edge_id: str) -> Edge:
        with self._lock:
            edge = self._edges.pop(edge_id, None)
            if edge is None:
                raise KeyError(f"Edge '{edge_id}' not found.")
            self._bump()

        return edge

    def get_edge(self, edge_id: str) -> Edge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise KeyError(f"Edge '{edge_id}' not found.") from None

    def edges(self) -> Iterable[Edge]:
        return list(self._edges.values())

    # ------------------------------------------------------------------
    # Bulk Replacement
    # ------------------------------------------------------------------

    def load_state(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """
        Replace the entire graph, e.g. when a workspace is opened.

        Counts as a single mutation.
        """
        with self._lock:
            self._nodes = {n.id: n for n in nodes}
            self._edges = {e.id: e for e in edges}
            self._bump()

    def clear(self) -> None:
        self.load_state([], [])
