from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class EdgeRole(str, Enum):
    """
    Why a link's content matters to the node it feeds.

    Roles form a total order consulted by the budget allocator:
    instruction > scope > reference > example > background.
    """

    INSTRUCTION = "instruction"
    SCOPE = "scope"
    REFERENCE = "reference"
    EXAMPLE = "example"
    BACKGROUND = "background"

    @property
    def rank(self) -> int:
        """Lower rank wins. 0 is the most important role."""
        return ROLE_RANK[self]

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_RANK = {
    EdgeRole.INSTRUCTION: 0,
    EdgeRole.SCOPE: 1,
    EdgeRole.REFERENCE: 2,
    EdgeRole.EXAMPLE: 3,
    EdgeRole.BACKGROUND: 4,
}

ROLE_LABELS = {
    EdgeRole.INSTRUCTION: "INSTRUCTION - Follow this guidance",
    EdgeRole.SCOPE: "Project Scope",
    EdgeRole.REFERENCE: "Reference",
    EdgeRole.EXAMPLE: "Example/Template",
    EdgeRole.BACKGROUND: "Background Context",
}


class EdgeStrength(str, Enum):
    LIGHT = "light"
    NORMAL = "normal"
    STRONG = "strong"

    @property
    def priority(self) -> int:
        """3=strong, 2=normal, 1=light"""
        return STRENGTH_PRIORITY[self]

    @classmethod
    def from_weight(cls, weight: Optional[float]) -> "EdgeStrength":
        """
        Map a legacy 1-10 weight onto a strength tier.

        Weights up to 3 are light, 8 and above are strong, anything in
        between (and a missing weight) is normal.
        """
        if weight is None:
            return cls.NORMAL
        if weight <= 3:
            return cls.LIGHT
        if weight >= 8:
            return cls.STRONG
        return cls.NORMAL


STRENGTH_PRIORITY = {
    EdgeStrength.LIGHT: 1,
    EdgeStrength.NORMAL: 2,
    EdgeStrength.STRONG: 3,
}


class EdgeDirection(str, Enum):
    UNIDIRECTIONAL = "unidirectional"
    BIDIRECTIONAL = "bidirectional"


# (edge, contributing node, receiving node) -> bool
EdgePredicate = Callable[["Edge", Any, Any], bool]


@dataclass(frozen=True)
class Edge:
    """
    Directed link meaning "source should inform target".

    Edges are immutable snapshots owned by the GraphStore. ``predicate``
    is an optional activation rule evaluated by the ActivationFilter each
    time the edge is considered; it does not take part in equality.

    ``weight`` is accepted only for migrating legacy edges and is folded
    into ``strength`` when no explicit strength is given.
    """

    id: str
    source: str
    target: str
    role: EdgeRole = EdgeRole.REFERENCE
    strength: Optional[EdgeStrength] = None
    predicate: Optional[EdgePredicate] = field(default=None, compare=False, repr=False)
    enabled: bool = True
    direction: EdgeDirection = EdgeDirection.UNIDIRECTIONAL
    weight: Optional[float] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Edge id must be a non-empty string.")

        if not self.source or not self.target:
            raise ValueError("Edge must have both a source and a target.")

        if not isinstance(self.role, EdgeRole):
            object.__setattr__(self, "role", EdgeRole(self.role))

        if self.strength is None:
            object.__setattr__(self, "strength", EdgeStrength.from_weight(self.weight))
        elif not isinstance(self.strength, EdgeStrength):
            object.__setattr__(self, "strength", EdgeStrength(self.strength))

        if not isinstance(self.direction, EdgeDirection):
            object.__setattr__(self, "direction", EdgeDirection(self.direction))

        if self.predicate is not None and not callable(self.predicate):
            raise TypeError("Edge predicate must be callable.")

    @property
    def is_bidirectional(self) -> bool:
        return self.direction is EdgeDirection.BIDIRECTIONAL
