"""
In-process cache engine for small reference collections: eager and lazy
loading, single-flight loads, slug index and write invalidation.
"""
from .core import (
    CacheEntry,
    CollectionSnapshot,
    LoadingMode,
    WHOLE_COLLECTION,
    id_scope,
    slug_scope,
)
from .policy import (
    CachePolicy,
    SettingsCachePolicy,
    StaticCachePolicy,
    parse_loading_mode,
)
from .coalescer import RequestCoalescer
from .slug_index import SlugIndex
from .eager import EagerCache
from .lazy import LazyCache
from .manager import CollectionCache

__all__ = [
    # Core types
    "CacheEntry",
    "CollectionSnapshot",
    "LoadingMode",
    "WHOLE_COLLECTION",
    "id_scope",
    "slug_scope",
    # Policies
    "CachePolicy",
    "SettingsCachePolicy",
    "StaticCachePolicy",
    "parse_loading_mode",
    # Coalescing
    "RequestCoalescer",
    # Strategies
    "SlugIndex",
    "EagerCache",
    "LazyCache",
    # Facade
    "CollectionCache",
]
