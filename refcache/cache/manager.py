"""
Per-collection cache facade with runtime-selectable loading mode.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from .base import Mapper, RecordSource, Selection
from .core import Clock, LoadingMode, default_clock
from .eager import EagerCache
from .lazy import LazyCache
from .policy import CachePolicy

logger = logging.getLogger("cache.manager")


class CollectionCache:
    """
    Read API for one cached collection:
    - Loading mode (eager / lazy) read from the policy on every call
    - Eager and lazy strategies each with their own single-flight loads
    - Invalidation that clears state without reloading
    - Hit / miss / invalidation statistics
    """

    def __init__(
        self,
        store: RecordSource,
        mapper: Mapper,
        policy: CachePolicy,
        selection: Selection = None,
        index_slugs: bool = False,
        clock: Clock = default_clock,
        label: Optional[str] = None,
    ):
        """
        Args:
            store: Record store the collection is loaded from
            mapper: record -> DTO, or None to drop the record
            policy: Source of TTL, loading mode and debug flag
            selection: Field names requested on full loads
            index_slugs: Build a slug index alongside the eager snapshot
            clock: Monotonic time source in seconds
            label: Name used in log lines (usually the owning service)
        """
        self._policy = policy
        self.collection = getattr(store, "collection", "?")
        self.label = label or f"CollectionCache[{self.collection}]"
        self._index_slugs = index_slugs

        self.eager = EagerCache(
            store, mapper, policy,
            selection=selection, clock=clock, label=self.label,
            index_slugs=index_slugs,
        )
        self.lazy = LazyCache(
            store, mapper, policy,
            selection=selection, clock=clock, label=self.label,
        )

        self._stats_lock = threading.Lock()
        self._stats = {
            "reads_eager": 0,
            "reads_lazy": 0,
            "invalidations": 0,
        }

    @property
    def mode(self) -> LoadingMode:
        return self._policy.loading_mode

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def get_by_id(self, record_id: int) -> Optional[Any]:
        """DTO for record_id, or None if the collection has no such record."""
        if self.mode is LoadingMode.LAZY:
            self._count("reads_lazy")
            return self.lazy.get_by_id(record_id)
        self._count("reads_eager")
        return self.eager.get_by_id(record_id)

    def get_all(self) -> List[Any]:
        """Every DTO in store order."""
        if self.mode is LoadingMode.LAZY:
            self._count("reads_lazy")
            return self.lazy.get_all()
        self._count("reads_eager")
        return self.eager.get_all()

    def get_by_slug(self, slug: str) -> Optional[Any]:
        """
        DTO for slug.

        Eager mode answers from the snapshot's slug index. Lazy mode has no
        index, so it queries the store for the slug and caches the result
        under its id.
        """
        if not self._index_slugs:
            raise TypeError(f"{self.label} is not slug-indexed")
        if self.mode is LoadingMode.LAZY:
            self._count("reads_lazy")
            return self.lazy.get_by_slug(slug)
        self._count("reads_eager")
        return self.eager.get_by_slug(slug)

    def invalidate(self, record_id: Optional[int] = None) -> None:
        """
        Clear cached state after a write. Never reloads.

        Eager mode, or no id: the whole snapshot and slug index go.
        Lazy mode with an id: only that entry goes.
        Lazy mode without an id: every entry goes.

        The strategy not currently selected is cleared as well, so switching
        mode later cannot serve data from before the write.
        """
        self.eager.invalidate()
        self.lazy.invalidate(record_id)
        self._count("invalidations")
        logger.debug(
            f"Invalidated {self.label} ({self.mode.value}, id={record_id})"
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        snapshot = self.eager.snapshot
        stats.update({
            "collection": self.collection,
            "mode": self.mode.value,
            "ttl_seconds": self._policy.ttl_seconds,
            "eager": {
                "entries": len(snapshot.id_map),
                "slugs": len(snapshot.slug_index) if snapshot.slug_index else 0,
                "loaded": snapshot.is_loaded,
                "expired": self.eager.is_expired,
                "hits": self.eager.hits,
                "misses": self.eager.misses,
                "loads": self.eager.loads,
                "load_failures": self.eager.load_failures,
                "coalescer": self.eager.coalescer.get_stats(),
            },
            "lazy": {
                "entries": self.lazy.entry_count(),
                "hits": self.lazy.hits,
                "misses": self.lazy.misses,
                "loads": self.lazy.loads,
                "load_failures": self.lazy.load_failures,
                "coalescer": self.lazy.coalescer.get_stats(),
            },
        })
        return stats
