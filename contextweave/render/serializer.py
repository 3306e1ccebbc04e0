from __future__ import annotations

from typing import Dict, List, Sequence

from ..graph.edges import EdgeRole
from ..models import ContextContributor, ContextSection, RenderedContext, SectionEntry
from ..models.rendered import HIGH_PRIORITY_MARKER
from .estimator import TokenEstimator

TRUNCATED_SUFFIX = "\n[...truncated]"


class ContextSerializer:
    """
    Responsible for turning an allocated contributor list into text.

    Output forms
    ------------
    • ``render``      role-labelled sections + token total + per-model cost
    • ``to_markdown`` standalone markdown document for file-based consumers

    Ordering is deterministic: sections follow role rank, entries within a
    section follow the order they are given in (callers pass allocator
    priority order).
    """

    def __init__(
        self,
        estimator: TokenEstimator,
        section_content_chars: int = 2000,
        cost_models: Sequence[str] = (),
    ) -> None:
        self._estimator = estimator
        self._content_chars = max(1, int(section_content_chars))
        self._cost_models = tuple(cost_models)

    def render(self, contributors: Sequence[ContextContributor]) -> RenderedContext:

        grouped: Dict[EdgeRole, List[ContextContributor]] = {}
        for c in contributors:
            grouped.setdefault(c.role, []).append(c)

        sections = []
        for role in sorted(grouped, key=lambda r: r.rank):
            members = grouped[role]
            sections.append(
                ContextSection(
                    role=role,
                    label=role.label,
                    entries=tuple(self._entry(c) for c in members),
                    tokens=sum(c.estimated_tokens for c in members),
                )
            )

        total = sum(c.estimated_tokens for c in contributors)

        return RenderedContext(
            sections=tuple(sections),
            total_tokens=total,
            per_model_cost=self._estimator.cost_table(total, self._cost_models),
        )

    def to_markdown(self, root_title: str, contributors: Sequence[ContextContributor]) -> str:
        lines = [
            f"# Canvas Context for: {root_title}",
            "",
            f"## Connected Nodes ({len(contributors)})",
            "",
        ]

        for c in contributors:
            lines.append(
                f"### [{c.kind.value}] {c.title} (depth: {c.depth}, role: {c.role.value})"
                + (HIGH_PRIORITY_MARKER if c.high_priority else "")
            )
            entry = self._entry(c)
            if entry.content:
                lines.append(entry.content)
            lines.extend(["", "---", ""])

        if not contributors:
            lines.extend(["_No connected nodes found._", ""])

        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _entry(self, c: ContextContributor) -> SectionEntry:
        content = c.content
        truncated = c.truncated

        if len(content) > self._content_chars:
            content = content[:self._content_chars]
            truncated = True

        if truncated:
            content += TRUNCATED_SUFFIX

        return SectionEntry(
            node_id=c.node_id,
            title=c.title,
            kind=c.kind.value,
            depth=c.depth,
            content=content,
            truncated=truncated,
            high_priority=c.high_priority,
        )
