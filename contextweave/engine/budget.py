from __future__ import annotations

import dataclasses
import logging
from typing import List, Sequence, Tuple

from ..models import ContextContributor
from ..render.estimator import chars_for_tokens, estimate_tokens
from ..render.serializer import TRUNCATED_SUFFIX

logger = logging.getLogger(__name__)

CONTEXT_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


def priority_key(indexed: Tuple[int, ContextContributor]) -> Tuple[int, int, int, int, int]:
    """
    Sort key, smallest first = most important.

    role rank, then depth (closer wins), then edge strength (stronger
    wins), then the node's own context priority, then emission order so
    ties stay deterministic.
    """
    index, c = indexed
    return (
        c.role.rank,
        c.depth,
        -c.strength.priority,
        CONTEXT_PRIORITY_RANK.get(c.context_priority, 1),
        index,
    )


class BudgetAllocator:
    """
    Trims a contributor list to a token ceiling.

    Trimming Model
    --------------
    • Contributors are ranked by priority (see ``priority_key``)
    • The lowest-priority contributor is dropped repeatedly until the
      running total fits
    • If only the top contributor is left and it alone exceeds the
      ceiling, it is kept with its content truncated to fit, leaving
      room for the serializer's ``[...truncated]`` marker when the
      ceiling is larger than the marker itself

    The allocator never returns an empty list for a non-empty input.
    Survivors are returned in their original (traversal) order.
    """

    def rank(self, contributors: Sequence[ContextContributor]) -> List[ContextContributor]:
        """Contributors in priority order, most important first."""
        return [c for _, c in sorted(enumerate(contributors), key=priority_key)]

    def allocate(
        self,
        contributors: Sequence[ContextContributor],
        max_tokens: int,
    ) -> List[ContextContributor]:

        if not contributors:
            return []

        max_tokens = max(1, int(max_tokens))

        ranked = sorted(enumerate(contributors), key=priority_key)
        total = sum(c.estimated_tokens for _, c in ranked)

        dropped = 0
        while total > max_tokens and len(ranked) > 1:
            _, lowest = ranked.pop()
            total -= lowest.estimated_tokens
            dropped += 1

        if total > max_tokens:
            index, top = ranked[0]
            ranked[0] = (index, self._truncate(top, max_tokens))
            logger.info(
                "[BUDGET] Top contributor %s truncated from %d to %d tokens",
                top.node_id,
                top.estimated_tokens,
                ranked[0][1].estimated_tokens,
            )

        if dropped:
            logger.info(
                "[BUDGET] Dropped %d of %d contributors to fit %d tokens",
                dropped,
                len(contributors),
                max_tokens,
            )

        ranked.sort(key=lambda pair: pair[0])
        return [c for _, c in ranked]

    @staticmethod
    def total_tokens(contributors: Sequence[ContextContributor]) -> int:
        return sum(c.estimated_tokens for c in contributors)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _truncate(contributor: ContextContributor, max_tokens: int) -> ContextContributor:
        # Leave room for the marker the serializer appends to cut content
        limit = chars_for_tokens(max_tokens)
        if limit > len(TRUNCATED_SUFFIX):
            limit -= len(TRUNCATED_SUFFIX)
        content = contributor.content[:limit]
        return dataclasses.replace(
            contributor,
            content=content,
            estimated_tokens=estimate_tokens(content),
            truncated=True,
        )
