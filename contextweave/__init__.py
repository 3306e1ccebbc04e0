"""
ContextWeave: assembles language-model context from a canvas graph.

Given a target node, the engine walks the inbound links of the
workspace graph, decides which connected entities count as context,
fits them into a token budget and renders them as role-labelled text.
"""

from .app import ContextWeaveApp
from .config import ContextConfig
from .engine import ActivationFilter, ContextEngine, TraversalMode
from .graph import Edge, EdgeDirection, EdgeRole, EdgeStrength, GraphStore, Node, NodeKind
from .render import PricingTable

__all__ = [
    "ContextWeaveApp",
    "ContextConfig",
    "ActivationFilter",
    "ContextEngine",
    "TraversalMode",
    "Edge",
    "EdgeDirection",
    "EdgeRole",
    "EdgeStrength",
    "GraphStore",
    "Node",
    "NodeKind",
    "PricingTable",
]
