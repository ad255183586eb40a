"""
Whole-collection cache with one shared expiry.
"""
import logging
from typing import Any, List, Optional

from .base import CollectionCacheBase
from .coalescer import RequestCoalescer
from .core import WHOLE_COLLECTION, CollectionSnapshot
from .slug_index import SlugIndex


class EagerCache(CollectionCacheBase):
    """
    Loads the entire collection into one snapshot and serves every read
    from it until the snapshot expires.

    - One expiry for the whole snapshot, no partial staleness
    - A stale read triggers one full load, shared by all concurrent readers
    - An id missing from a fresh snapshot is a real "not found"
    - A failed load leaves the previous snapshot and its expiry untouched
    """

    logger = logging.getLogger("cache.eager")

    def __init__(self, *args, index_slugs: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self._index_slugs = index_slugs
        self._snapshot = CollectionSnapshot.empty()
        self._coalescer = RequestCoalescer()
        self.hits = 0
        self.misses = 0
        self.loads = 0
        self.load_failures = 0

    @property
    def snapshot(self) -> CollectionSnapshot:
        """The currently published snapshot (may be stale)."""
        return self._snapshot

    @property
    def coalescer(self) -> RequestCoalescer:
        return self._coalescer

    @property
    def is_expired(self) -> bool:
        return self._snapshot.is_expired(self._now())

    def ensure_fresh(self) -> CollectionSnapshot:
        """
        Return a fresh snapshot, loading the collection if needed.

        Callers attached to an in-flight load receive exactly the snapshot
        that load produced.
        """
        snapshot = self._snapshot
        if not snapshot.is_expired(self._now()):
            self.hits += 1
            self._debug("hit", entries=len(snapshot.id_map))
            return snapshot

        self.misses += 1
        self._debug("miss", loaded=snapshot.is_loaded)
        return self._coalescer.get_or_fetch(WHOLE_COLLECTION, self._refresh)

    def _build_snapshot(self, records) -> CollectionSnapshot:
        id_map = self._map_all(records)
        slug_index = SlugIndex.from_id_map(id_map) if self._index_slugs else None
        return CollectionSnapshot(
            id_map=id_map,
            slug_index=slug_index,
            expires_at=self._expiry_from_now(),
        )

    def _refresh(self) -> CollectionSnapshot:
        with self._lock:
            generation = self._generation
            current = self._snapshot
            # A load that finished after the caller saw a stale snapshot
            if not current.is_expired(self._now()):
                self._debug("hit", entries=len(current.id_map), recheck=True)
                return current

        self._debug("refresh_start")
        try:
            records = self._store.find_all(self._selection)
        except Exception as e:
            self.load_failures += 1
            self.logger.warning(
                f"Full load failed for {self.collection}, keeping previous snapshot: {e}"
            )
            raise

        snapshot = self._build_snapshot(records)
        with self._lock:
            self.loads += 1
            if generation == self._generation:
                self._snapshot = snapshot
                published = True
            else:
                published = False

        self._debug(
            "refresh_finish",
            entries=len(snapshot.id_map),
            published=published,
        )
        return snapshot

    def get_by_id(self, record_id: int) -> Optional[Any]:
        return self.ensure_fresh().id_map.get(record_id)

    def get_all(self) -> List[Any]:
        return list(self.ensure_fresh().id_map.values())

    def get_by_slug(self, slug: str) -> Optional[Any]:
        slug_index = self.ensure_fresh().slug_index
        if slug_index is None:
            raise TypeError(f"{self.label} does not index slugs")
        return slug_index.get(slug)

    def invalidate(self) -> None:
        """Drop the snapshot (and its slug index). The next read reloads."""
        with self._lock:
            self._generation += 1
            self._snapshot = CollectionSnapshot.empty()
        self._debug("invalidate")

    def entry_count(self) -> int:
        return len(self._snapshot.id_map)
