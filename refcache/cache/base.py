"""
Pieces shared by the eager and lazy collection caches.
"""
import logging
import threading
from typing import (
    Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence,
)

from .core import Clock, default_clock
from .policy import CachePolicy

# Maps a store record to a DTO; None rejects the record
Mapper = Callable[[Any], Optional[Any]]
# Field names handed to find_all, or None for every column
Selection = Optional[Sequence[str]]


class RecordSource(Protocol):
    """The part of a record store a cache reads from."""

    collection: str

    def find_by_id(self, record_id: int) -> Optional[Any]: ...

    def find_all(self, selection: Selection = None) -> List[Any]: ...

    def find_by_filter(self, where: Mapping[str, Any], limit: Optional[int] = None) -> List[Any]: ...


class CollectionCacheBase:
    """
    Store, mapper, policy and clock wiring for one collection.

    Subclasses own their state and mutate it only under self._lock.
    self._generation is bumped by every invalidation; a load that started
    under an older generation hands its result to its callers but does not
    write it into the cache.
    """

    logger = logging.getLogger("cache")

    def __init__(
        self,
        store: RecordSource,
        mapper: Mapper,
        policy: CachePolicy,
        selection: Selection = None,
        clock: Clock = default_clock,
        label: Optional[str] = None,
    ):
        self._store = store
        self._mapper = mapper
        self._policy = policy
        self._selection = selection
        self._clock = clock
        self._lock = threading.RLock()
        self._generation = 0
        self.collection = getattr(store, "collection", "?")
        self.label = label or type(self).__name__

    def _now(self) -> float:
        return self._clock()

    def _expiry_from_now(self) -> float:
        return self._clock() + self._policy.ttl_seconds

    def _map(self, record: Any) -> Optional[Any]:
        if record is None:
            return None
        return self._mapper(record)

    def _map_all(self, records: Iterable[Any]) -> Dict[int, Any]:
        """Map records into a fresh id -> DTO dict, dropping rejected ones."""
        id_map: Dict[int, Any] = {}
        for record in records:
            dto = self._mapper(record)
            if dto is not None:
                id_map[dto.id] = dto
        return id_map

    def _debug(self, event: str, **fields: Any) -> None:
        """Emit a tagged log line for a cache event when debug is enabled."""
        if not self._policy.debug:
            return
        detail = " ".join(f"{k}={v!r}" for k, v in fields.items())
        self.logger.info(
            f"[{self.label}:{self.collection}] {event} {detail}".rstrip(),
            extra={
                "cache": self.label,
                "collection": self.collection,
                "cache_event": event,
            },
        )
