"""
Record-store services, cached and uncached.
"""
from .base import BaseService, BaseCollectionService
from .cached import CachedCollectionService, CachedSlugCollectionService
from .catalog import CategoryService, TagService, CurrencyService

__all__ = [
    "BaseService",
    "BaseCollectionService",
    "CachedCollectionService",
    "CachedSlugCollectionService",
    "CategoryService",
    "TagService",
    "CurrencyService",
]
