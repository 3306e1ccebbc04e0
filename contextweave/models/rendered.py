from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..graph.edges import EdgeRole
from .contributor import ContextContributor

SECTION_SEPARATOR = "\n\n---\n\n"
HIGH_PRIORITY_MARKER = " [HIGH PRIORITY]"


@dataclass(frozen=True)
class ContextTraversal:
    """Structured traversal view for inspection and debugging panels."""

    nodes: Tuple[ContextContributor, ...]
    node_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [c.to_dict() for c in self.nodes],
            "node_count": self.node_count,
        }


@dataclass(frozen=True)
class SectionEntry:
    node_id: str
    title: str
    kind: str
    depth: int
    content: str
    truncated: bool = False
    high_priority: bool = False


@dataclass(frozen=True)
class ContextSection:
    """
    Role-labelled block of context.

    All entries in a section share the same edge role. Entries are kept
    in allocator priority order (closer and stronger first).
    """

    role: EdgeRole
    label: str
    entries: Tuple[SectionEntry, ...]
    tokens: int

    def text(self) -> str:
        blocks = []

        for entry in self.entries:
            block = f"[{self.label}: {entry.title}]"
            if entry.high_priority:
                block += HIGH_PRIORITY_MARKER
            if entry.content:
                block += f"\n{entry.content}"
            blocks.append(block)

        return SECTION_SEPARATOR.join(blocks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "label": self.label,
            "tokens": self.tokens,
            "entries": [
                {
                    "id": e.node_id,
                    "title": e.title,
                    "kind": e.kind,
                    "depth": e.depth,
                    "content": e.content,
                    "truncated": e.truncated,
                    "high_priority": e.high_priority,
                }
                for e in self.entries
            ],
        }


@dataclass(frozen=True)
class CostEstimate:
    input_cost: float
    output_cost: float

    @property
    def total_cost(self) -> float:
        return self.input_cost + self.output_cost

    def to_dict(self) -> Dict[str, float]:
        return {
            "input_cost": self.input_cost,
            "output_cost": self.output_cost,
            "total_cost": self.total_cost,
        }


@dataclass(frozen=True)
class RenderedContext:
    """
    Final serializer output handed to the prompt-assembly collaborator.

    ``per_model_cost`` maps a model identifier to the estimated cost of
    sending ``total_tokens`` of context plus the configured output
    allowance to that model.
    """

    sections: Tuple[ContextSection, ...]
    total_tokens: int
    per_model_cost: Dict[str, CostEstimate] = field(default_factory=dict)

    def as_text(self, max_chars: int) -> str:
        """Concatenate all sections, capped at ``max_chars`` characters."""
        text = SECTION_SEPARATOR.join(s.text() for s in self.sections if s.entries)
        return text[:max(0, max_chars)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "total_tokens": self.total_tokens,
            "per_model_cost": {m: c.to_dict() for m, c in self.per_model_cost.items()},
        }


@dataclass(frozen=True)
class BreakdownItem:
    label: str
    tokens: int
    node_id: str = ""


@dataclass(frozen=True)
class TokenEstimate:
    """
    Full token/cost picture for one request against one model.

    Not persisted; recomputed on demand.
    """

    model: str
    input_tokens: int
    estimated_output_tokens: int
    breakdown: Tuple[BreakdownItem, ...]
    cost: CostEstimate
    context_limit: int
    usage_percentage: float
    usage_level: str

    def to_dict(self) -> Dict[str, Any]:
        breakdown: List[Dict[str, Any]] = [
            {"label": b.label, "tokens": b.tokens, "node_id": b.node_id or None}
            for b in self.breakdown
        ]
        return {
            "model": self.model,
            "input_tokens": self.input_tokens,
            "estimated_output_tokens": self.estimated_output_tokens,
            "breakdown": breakdown,
            "cost": self.cost.to_dict(),
            "context_limit": self.context_limit,
            "usage_percentage": self.usage_percentage,
            "usage_level": self.usage_level,
        }
