from __future__ import annotations

import logging
from collections import OrderedDict
from threading import RLock
from typing import Callable, Dict, Optional, Protocol, Tuple, runtime_checkable

from ..models import CacheEntry

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsGraphVersion(Protocol):
    """Anything exposing the graph's monotonically increasing mutation counter."""

    @property
    def version(self) -> int: ...


class ContextCache:
    """
    Memoizes traversal + allocation results per (target, graph version).

    Invalidation is coarse: the first lookup after the
    graph version moves discards every entry, whichever subgraph the
    mutation touched. A hit returns the stored entry object unchanged.

    Entries are additionally LRU-bounded by ``max_entries``.
    """

    def __init__(
        self,
        graph: SupportsGraphVersion,
        compute: Callable[[str], CacheEntry],
        max_entries: int = 256,
    ) -> None:
        self._graph = graph
        self._compute = compute
        self._max_entries = max(1, int(max_entries))

        self._entries: "OrderedDict[Tuple[str, int], CacheEntry]" = OrderedDict()
        self._version: Optional[int] = None
        self._lock = RLock()

        self._stats: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "invalidations": 0,
            "evictions": 0,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_or_compute(self, target_id: str) -> CacheEntry:

        with self._lock:
            version = self._graph.version
            self._sync_version(version)

            key = (target_id, version)
            entry = self._entries.get(key)

            if entry is not None:
                self._entries.move_to_end(key)
                self._stats["hits"] += 1
                logger.debug("[CACHE] Hit | target=%s | version=%d", target_id, version)
                return entry

            self._stats["misses"] += 1
            entry = self._compute(target_id)

            self._sync_version(entry.graph_version)
            self._entries[(target_id, entry.graph_version)] = entry
            self._evict()

            logger.info(
                "[CACHE] Miss | target=%s | version=%d | contributors=%d | tokens=%d",
                target_id,
                entry.graph_version,
                entry.node_count,
                entry.total_tokens,
            )

            return entry

    def peek(self, target_id: str) -> Optional[CacheEntry]:
        """Return the entry for the current version without computing."""
        with self._lock:
            return self._entries.get((target_id, self._graph.version))

    def clear(self) -> None:
        with self._lock:
            if self._entries:
                self._stats["invalidations"] += 1
            self._entries.clear()
            self._version = None

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats, size=len(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sync_version(self, version: int) -> None:
        if self._version == version:
            return

        if self._entries:
            self._stats["invalidations"] += 1
            logger.debug(
                "[CACHE] Graph version %s -> %d, dropping %d entries",
                self._version,
                version,
                len(self._entries),
            )
            self._entries.clear()

        self._version = version

    def _evict(self) -> None:
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            self._stats["evictions"] += 1
