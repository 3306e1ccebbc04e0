import logging
from typing import Any, Dict, Iterable, Optional

from .graph.edges import EdgeStrength
from .graph.nodes import NodeKind

logger = logging.getLogger(__name__)

MAX_TRAVERSAL_DEPTH = 10

TRAVERSAL_MODES = {"all", "strength-threshold"}

DEFAULT_COST_MODELS = ("claude-sonnet-4", "gpt-4o", "gemini-2.0-flash")


class ContextConfig:
    """
    Central configuration object for context assembly.

    Invalid values are clamped to the nearest safe value instead of being
    rejected, so the engine can always produce a usable result. Each
    adjustment is logged at warning level.
    """

    def __init__(
        self,
        max_depth: int = 2,
        max_tokens: int = 8000,
        traversal_mode: str = "all",
        strength_threshold: str = "normal",
        excluded_kinds: Iterable[str] = (),
        follow_bidirectional: bool = True,
        context_text_max_chars: int = 32000,
        section_content_chars: int = 2000,
        estimated_output_tokens: int = 4096,
        cost_models: Iterable[str] = DEFAULT_COST_MODELS,
        cache_max_entries: int = 256,
    ):
        self.max_depth = max_depth
        self.max_tokens = max_tokens
        self.traversal_mode = traversal_mode
        self.strength_threshold = strength_threshold
        self.excluded_kinds = excluded_kinds
        self.follow_bidirectional = follow_bidirectional
        self.context_text_max_chars = context_text_max_chars
        self.section_content_chars = section_content_chars
        self.estimated_output_tokens = estimated_output_tokens
        self.cost_models = cost_models
        self.cache_max_entries = cache_max_entries

        self._normalize()

    def _normalize(self):
        self.max_depth = _clamp("max_depth", self.max_depth, 0, MAX_TRAVERSAL_DEPTH)
        self.max_tokens = _clamp("max_tokens", self.max_tokens, 1)
        self.context_text_max_chars = _clamp(
            "context_text_max_chars", self.context_text_max_chars, 1
        )
        self.section_content_chars = _clamp(
            "section_content_chars", self.section_content_chars, 1
        )
        self.estimated_output_tokens = _clamp(
            "estimated_output_tokens", self.estimated_output_tokens, 0
        )
        self.cache_max_entries = _clamp("cache_max_entries", self.cache_max_entries, 1)

        if self.traversal_mode not in TRAVERSAL_MODES:
            logger.warning(
                "[CONFIG] Unsupported traversal_mode %r, using 'all'",
                self.traversal_mode,
            )
            self.traversal_mode = "all"

        try:
            self.strength_threshold = EdgeStrength(self.strength_threshold)
        except ValueError:
            logger.warning(
                "[CONFIG] Unsupported strength_threshold %r, using 'normal'",
                self.strength_threshold,
            )
            self.strength_threshold = EdgeStrength.NORMAL

        kinds = []
        for kind in self.excluded_kinds or ():
            try:
                kinds.append(NodeKind(kind))
            except ValueError:
                logger.warning("[CONFIG] Ignoring unknown excluded kind %r", kind)
        self.excluded_kinds = frozenset(kinds)

        self.follow_bidirectional = bool(self.follow_bidirectional)
        self.cost_models = tuple(self.cost_models or ())

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def replace(self, **changes: Any) -> "ContextConfig":
        """Return a new config with ``changes`` applied (and clamped)."""
        values = self.as_dict()
        unknown = set(changes) - set(values)
        if unknown:
            raise TypeError(f"Unknown config fields: {sorted(unknown)}")
        values.update({k: v for k, v in changes.items()})
        return ContextConfig(**values)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "max_depth": self.max_depth,
            "max_tokens": self.max_tokens,
            "traversal_mode": self.traversal_mode,
            "strength_threshold": self.strength_threshold.value,
            "excluded_kinds": sorted(k.value for k in self.excluded_kinds),
            "follow_bidirectional": self.follow_bidirectional,
            "context_text_max_chars": self.context_text_max_chars,
            "section_content_chars": self.section_content_chars,
            "estimated_output_tokens": self.estimated_output_tokens,
            "cost_models": list(self.cost_models),
            "cache_max_entries": self.cache_max_entries,
        }

    def __repr__(self) -> str:
        return (
            f"ContextConfig(max_depth={self.max_depth}, max_tokens={self.max_tokens}, "
            f"mode={self.traversal_mode})"
        )


def _clamp(name: str, value, lower: int, upper: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("[CONFIG] %s=%r is not an integer, using %d", name, value, lower)
        return lower

    clamped = max(lower, number)
    if upper is not None:
        clamped = min(upper, clamped)

    if clamped != number:
        logger.warning("[CONFIG] %s=%d clamped to %d", name, number, clamped)

    return clamped
