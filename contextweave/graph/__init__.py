"""
Workspace graph: typed nodes, directed context edges, and the store
that owns them.
"""

from .nodes import Node, NodeKind
from .edges import Edge, EdgeDirection, EdgeRole, EdgeStrength
from .store import GraphSnapshot, GraphStore

__all__ = [
    "Node",
    "NodeKind",
    "Edge",
    "EdgeDirection",
    "EdgeRole",
    "EdgeStrength",
    "GraphSnapshot",
    "GraphStore",
]
