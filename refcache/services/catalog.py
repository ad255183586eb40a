"""
Concrete reference-data services: categories, tags and currencies.
"""
from refcache.models import Category, Currency, Tag
from refcache.schemas import CategoryDTO, CurrencyDTO, TagDTO
from refcache.services.cached import CachedCollectionService, CachedSlugCollectionService


class CategoryService(CachedSlugCollectionService):
    """Categories, addressed by id or slug, with an optional image."""

    model = Category
    order_by = "sort_order"

    def select_fields(self):
        return ("id", "name", "slug", "description", "sort_order", "image_id", "image")

    def to_dto(self, record):
        return CategoryDTO(
            id=record.id,
            name=record.name,
            slug=record.slug or "",
            description=record.description,
            sort_order=record.sort_order or 0,
            image=self.to_image_dto(record.image),
        )


class TagService(CachedSlugCollectionService):
    model = Tag

    def select_fields(self):
        return ("id", "name", "slug")

    def to_dto(self, record):
        return TagDTO(id=record.id, name=record.name, slug=record.slug or "")


class CurrencyService(CachedCollectionService):
    """Currencies by id. Inactive currencies are left out of the cache."""

    model = Currency

    def select_fields(self):
        return ("id", "code", "name", "symbol", "is_active")

    def to_dto(self, record):
        if not record.is_active:
            return None
        return CurrencyDTO(
            id=record.id,
            code=record.code,
            name=record.name,
            symbol=record.symbol,
        )
