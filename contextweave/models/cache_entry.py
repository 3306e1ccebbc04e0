from dataclasses import dataclass, field
from typing import Any, Dict, Tuple
import time

from .contributor import ContextContributor


@dataclass(frozen=True)
class CacheEntry:
    """
    Memoized traversal + allocation result for one target at one graph
    version.

    An entry is never mutated. When the graph version advances it is
    superseded by a new entry rather than refreshed, so callers may use
    identity (``is``) to detect that nothing changed.
    """

    target_node_id: str
    graph_version: int
    contributors: Tuple[ContextContributor, ...]
    total_tokens: int
    created_at: float = field(default_factory=time.time, compare=False)

    def __post_init__(self):
        if not isinstance(self.contributors, tuple):
            object.__setattr__(self, "contributors", tuple(self.contributors))

    @property
    def node_count(self) -> int:
        return len(self.contributors)

    def is_valid_for(self, graph_version: int) -> bool:
        return self.graph_version == graph_version

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_node_id": self.target_node_id,
            "graph_version": self.graph_version,
            "nodes": [c.to_dict() for c in self.contributors],
            "node_count": self.node_count,
            "total_tokens": self.total_tokens,
        }
