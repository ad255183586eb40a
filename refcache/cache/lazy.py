"""
Per-id cache populated on demand, each entry with its own expiry.
"""
import logging
from typing import Any, Dict, List, Optional

from .base import CollectionCacheBase
from .coalescer import RequestCoalescer
from .core import WHOLE_COLLECTION, CacheEntry, id_scope, slug_scope


class LazyCache(CollectionCacheBase):
    """
    Loads records one id at a time, on first request.

    - get_by_id only looks at that id's entry
    - Concurrent loads of the same id share one store call; different ids
      load independently
    - Not-found and mapper-rejected ids are not cached, so every call for
      them goes back to the store
    - get_all primes the whole collection and replaces every entry
    """

    logger = logging.getLogger("cache.lazy")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._entries: Dict[int, CacheEntry] = {}
        # Bumped by invalidate(id); vetoes in-flight writes for that id only
        self._id_versions: Dict[int, int] = {}
        self._coalescer = RequestCoalescer()
        self.hits = 0
        self.misses = 0
        self.loads = 0
        self.load_failures = 0

    @property
    def coalescer(self) -> RequestCoalescer:
        return self._coalescer

    def peek(self, record_id: int) -> Optional[CacheEntry]:
        """The raw entry for record_id, fresh or not, without loading."""
        with self._lock:
            return self._entries.get(record_id)

    def get_by_id(self, record_id: int) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(record_id)

        if entry is not None and not entry.is_expired(self._now()):
            self.hits += 1
            self._debug("hit", id=record_id)
            return entry.dto

        self.misses += 1
        self._debug("miss", id=record_id, expired=entry is not None)
        return self._coalescer.get_or_fetch(
            id_scope(record_id),
            lambda: self._load_by_id(record_id),
        )

    def _load_by_id(self, record_id: int) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(record_id)
            token = (self._generation, self._id_versions.get(record_id, 0))
        # Stored by a load that finished after the caller saw it stale
        if entry is not None and not entry.is_expired(self._now()):
            self._debug("hit", id=record_id, recheck=True)
            return entry.dto

        self._debug("refresh_start", id=record_id)
        record = self._fetch(lambda: self._store.find_by_id(record_id))
        dto = self._map(record)
        self._store_one(record_id, dto, token)
        self._debug("refresh_finish", id=record_id, found=dto is not None)
        return dto

    def get_by_slug(self, slug: str) -> Optional[Any]:
        """
        Look a slug up in the store and write the DTO through to its id entry.

        Not answered from the entries: lazy mode keeps no slug index.
        """
        self.misses += 1
        self._debug("miss", slug=slug)
        return self._coalescer.get_or_fetch(
            slug_scope(slug),
            lambda: self._load_by_slug(slug),
        )

    def _load_by_slug(self, slug: str) -> Optional[Any]:
        with self._lock:
            generation = self._generation
            id_versions = dict(self._id_versions)

        self._debug("refresh_start", slug=slug)
        records = self._fetch(lambda: self._store.find_by_filter({"slug": slug}, 1))
        dto = self._map(records[0]) if records else None
        if dto is not None:
            self._store_one(dto.id, dto, (generation, id_versions.get(dto.id, 0)))
        self._debug("refresh_finish", slug=slug, found=dto is not None)
        return dto

    def get_all(self) -> List[Any]:
        """Fetch the whole collection and replace every entry with it."""
        return self._coalescer.get_or_fetch(WHOLE_COLLECTION, self._prime)

    def _prime(self) -> List[Any]:
        with self._lock:
            generation = self._generation
            id_versions = dict(self._id_versions)

        self._debug("refresh_start", scope="all")
        records = self._fetch(lambda: self._store.find_all(self._selection))
        id_map = self._map_all(records)
        expires_at = self._expiry_from_now()
        entries = {
            record_id: CacheEntry(dto=dto, expires_at=expires_at)
            for record_id, dto in id_map.items()
        }

        with self._lock:
            if generation == self._generation:
                # Ids invalidated while the fetch ran are left out
                for record_id, version in self._id_versions.items():
                    if id_versions.get(record_id, 0) != version:
                        entries.pop(record_id, None)
                self._entries = entries

        self._debug("refresh_finish", scope="all", entries=len(entries))
        return list(id_map.values())

    def _fetch(self, call):
        try:
            result = call()
        except Exception as e:
            self.load_failures += 1
            self.logger.warning(f"Load failed for {self.collection}: {e}")
            raise
        self.loads += 1
        return result

    def _store_one(self, record_id: int, dto: Optional[Any], token: tuple) -> None:
        with self._lock:
            if token != (self._generation, self._id_versions.get(record_id, 0)):
                return
            if dto is None:
                self._entries.pop(record_id, None)
            else:
                self._entries[record_id] = CacheEntry(
                    dto=dto, expires_at=self._expiry_from_now()
                )

    def invalidate(self, record_id: Optional[int] = None) -> None:
        """Remove one id's entry, or every entry when record_id is None."""
        with self._lock:
            if record_id is None:
                self._generation += 1
                self._entries = {}
                self._id_versions = {}
            else:
                self._id_versions[record_id] = self._id_versions.get(record_id, 0) + 1
                self._entries.pop(record_id, None)
        self._debug("invalidate", id=record_id)

    def entry_count(self) -> int:
        with self._lock:
            return len(self._entries)
