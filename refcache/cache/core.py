"""
Core cache data structures.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .slug_index import SlugIndex

# Time source for all expiry arithmetic (seconds, monotonic)
Clock = Callable[[], float]
default_clock: Clock = time.monotonic


class LoadingMode(Enum):
    """Loading strategies a collection cache can run in."""
    EAGER = "eager"   # Whole collection preloaded, one shared expiry
    LAZY = "lazy"     # Per-id entries loaded on demand


class _WholeCollection:
    """Sentinel scope for loads that fetch the entire collection."""

    def __repr__(self) -> str:
        return "WHOLE_COLLECTION"


WHOLE_COLLECTION = _WholeCollection()


def id_scope(record_id: int) -> tuple:
    """Single-flight scope for a per-id load."""
    return ("id", record_id)


def slug_scope(slug: str) -> tuple:
    """Single-flight scope for a per-slug load."""
    return ("slug", slug)


@dataclass(frozen=True)
class CacheEntry:
    """
    A lazily loaded DTO with its own expiry.

    Entries are replaced wholesale on reload, never merged.
    """
    dto: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CollectionSnapshot:
    """
    The whole collection as of one full load.

    Published by a single reference assignment, so readers see either the
    previous snapshot or this one, never a half-built map. The slug index is
    built from id_map before publication.
    """
    id_map: Dict[int, Any] = field(default_factory=dict)
    slug_index: Optional[SlugIndex] = None
    expires_at: Optional[float] = None  # None = never loaded

    def is_expired(self, now: float) -> bool:
        return self.expires_at is None or now > self.expires_at

    @property
    def is_loaded(self) -> bool:
        return self.expires_at is not None

    @classmethod
    def empty(cls) -> "CollectionSnapshot":
        return cls()
