"""
Collection services with an in-memory DTO cache.

Use for small lookup collections (categories, tags, currencies) that are
read far more often than they change. The loading mode and TTL come from
the cache policy on every call.
"""
from typing import Any, Dict, List, Optional

from refcache.cache import CollectionCache
from refcache.cache.core import default_clock
from refcache.errors import ConfigurationMissingError
from refcache.services.base import BaseCollectionService


class CachedCollectionService(BaseCollectionService):
    """
    BaseCollectionService whose DTO reads are served from a CollectionCache.

    Raw record reads (get_by_id, get_all) still go to the store. Call
    invalidate_cache() after create/update/delete; the invalidate hooks do
    this automatically.
    """

    index_slugs = False

    def __init__(self, session_factory=None, policy=None, store=None, clock=default_clock, **kwargs):
        super().__init__(session_factory, policy, store=store, **kwargs)
        if policy is None:
            raise ConfigurationMissingError(
                f"{type(self).__name__} needs a cache policy"
            )
        self.cache = CollectionCache(
            self.store,
            self.to_dto,
            policy,
            selection=self.select_fields(),
            index_slugs=self.index_slugs,
            clock=clock,
            label=type(self).__name__,
        )

    def get_by_id_dto(self, record_id: int):
        return self.cache.get_by_id(record_id)

    def get_all_dto(self) -> List[Any]:
        return self.cache.get_all()

    def invalidate_cache(self, record_id: Optional[int] = None) -> None:
        """Clear cached DTOs (one id in lazy mode). The next read reloads."""
        self.cache.invalidate(record_id)

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats()


class CachedSlugCollectionService(CachedCollectionService):
    """
    Cached collection whose DTOs also carry a slug.

    Every eager refresh builds the slug index from the same id map.
    """

    index_slugs = True

    def get_by_slug_cached(self, slug: str):
        return self.cache.get_by_slug(slug)

    def get_by_slug(self, slug: str):
        """Full record by slug straight from the store, bypassing the cache."""
        records = self.store.find_by_filter({"slug": slug}, limit=1)
        return records[0] if records else None
