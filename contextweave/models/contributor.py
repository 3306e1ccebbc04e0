from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..graph.edges import EdgeRole, EdgeStrength
from ..graph.nodes import NodeKind


@dataclass(frozen=True)
class ContextContributor:
    """
    A node the engine has determined feeds context into a target.

    Produced fresh by each traversal and never mutated afterwards. The
    budget allocator derives truncated copies instead of editing one in
    place.

    Architectural Role
    ------------------
    GraphSnapshot → TraversalEngine → ContextContributor → BudgetAllocator
    """

    node_id: str
    """Id of the contributing node."""

    kind: NodeKind
    """Kind of the contributing node."""

    title: str
    """Display title at traversal time."""

    role: EdgeRole
    """Role of the edge through which the node was reached."""

    depth: int
    """Hop distance from the target (1 = direct inbound neighbour)."""

    estimated_tokens: int
    """Token estimate of ``content``."""

    strength: EdgeStrength = EdgeStrength.NORMAL
    """Strength of the edge through which the node was reached."""

    content: str = ""
    """Body text this contributor injects."""

    via_edge_id: Optional[str] = None
    """
    Edge that admitted this contributor. None for container members,
    which are reached through membership rather than an edge.
    """

    truncated: bool = False
    """True when the allocator cut ``content`` to fit the ceiling."""

    context_priority: str = "medium"
    """User-assigned priority of the node: high, medium or low."""

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def __post_init__(self):
        if self.depth < 0:
            raise ValueError("depth cannot be negative.")

        if self.estimated_tokens < 0:
            raise ValueError("estimated_tokens cannot be negative.")

    @property
    def high_priority(self) -> bool:
        return self.context_priority == "high"

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "kind": self.kind.value,
            "title": self.title,
            "role": self.role.value,
            "depth": self.depth,
            "strength": self.strength.value,
            "estimated_tokens": self.estimated_tokens,
            "truncated": self.truncated,
            "context_priority": self.context_priority,
        }

    def __repr__(self) -> str:
        return (
            f"ContextContributor(id={self.node_id}, role={self.role.value}, "
            f"depth={self.depth}, tokens={self.estimated_tokens})"
        )
