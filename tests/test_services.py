"""
Service tests against an in-memory SQLite database: record store queries,
DTO mapping, cached reads and store failures.
"""
import pytest
from sqlalchemy.exc import OperationalError

from refcache.cache import LoadingMode, StaticCachePolicy
from refcache.db import make_engine, make_session_factory
from refcache.errors import ConfigurationMissingError, StoreFailureError
from refcache.models import Category, Media
from refcache.schemas import CategoryDTO, ImageDTO
from refcache.services import BaseCollectionService, CategoryService, CurrencyService, TagService
from refcache.store import SQLAlchemyRecordStore

from tests.helpers import FakeClock


@pytest.fixture
def policy():
    return StaticCachePolicy(ttl_seconds=60, loading_mode=LoadingMode.EAGER)


@pytest.fixture
def seeded(session_factory):
    """Two categories (one with an image), two tags and two currencies."""
    with session_factory() as session:
        with session.begin():
            image = Media(url="/media/fruit.png", alt="Fruit", width=64, height=48)
            session.add(image)
            session.flush()
            session.add_all([
                Category(name="Vegetables", slug="vegetables", sort_order=2),
                Category(name="Fruit", slug="fruit", sort_order=1, image_id=image.id),
            ])
    categories = SQLAlchemyRecordStore(Category, session_factory)
    categories_by_slug = {c.slug: c.id for c in categories.find_all()}

    tags = SQLAlchemyRecordStore(TagService.model, session_factory)
    tags.create({"name": "New", "slug": "new"})
    tags.create({"name": "Untitled", "slug": None})

    currencies = SQLAlchemyRecordStore(CurrencyService.model, session_factory)
    currencies.create({"code": "EUR", "name": "Euro", "symbol": "€"})
    currencies.create({"code": "DEM", "name": "Deutsche Mark", "is_active": False})
    return categories_by_slug


@pytest.fixture
def categories(session_factory, policy):
    return CategoryService(session_factory=session_factory, policy=policy, clock=FakeClock())


# ===== RECORD STORE =====

def test_store_find_all_honours_order_by(session_factory, seeded):
    store = SQLAlchemyRecordStore(Category, session_factory, order_by="sort_order")
    assert [c.slug for c in store.find_all()] == ["fruit", "vegetables"]


def test_store_selection_loads_relationships(session_factory, seeded):
    store = SQLAlchemyRecordStore(Category, session_factory)
    records = store.find_all(("id", "slug", "image_id", "image"))
    fruit = next(r for r in records if r.slug == "fruit")
    assert fruit.image.url == "/media/fruit.png"


def test_store_rejects_unknown_field(session_factory, seeded):
    store = SQLAlchemyRecordStore(Category, session_factory)
    with pytest.raises(ValueError):
        store.find_all(("id", "nope"))


def test_store_find_by_filter(session_factory, seeded):
    store = SQLAlchemyRecordStore(Category, session_factory)
    assert [c.name for c in store.find_by_filter({"slug": "fruit"}, limit=1)] == ["Fruit"]
    assert store.find_by_filter({"slug": "nope"}) == []


def test_store_update_and_delete(session_factory, seeded):
    store = SQLAlchemyRecordStore(Category, session_factory)
    record_id = seeded["fruit"]

    assert store.update(record_id, {"name": "Fruits"}).name == "Fruits"
    assert store.update(999, {"name": "x"}) is None
    assert store.delete(record_id) is True
    assert store.delete(record_id) is False
    assert store.find_by_id(record_id) is None


def test_store_failure_is_wrapped():
    """SQLAlchemy errors surface as StoreFailureError with the cause attached"""
    engine = make_engine("sqlite://")  # no tables
    store = SQLAlchemyRecordStore(Category, make_session_factory(engine))

    with pytest.raises(StoreFailureError) as exc_info:
        store.find_all()
    assert exc_info.value.collection == "categories"
    assert exc_info.value.operation == "find_all"
    assert isinstance(exc_info.value.__cause__, OperationalError)


# ===== DTO MAPPING =====

def test_to_image_dto():
    class Img:
        url = "/a.png"
        alt = "A"
        width = 10
        height = 20

    assert BaseCollectionService.to_image_dto(Img()) == ImageDTO(src="/a.png", alt="A", width=10, height=20)
    assert BaseCollectionService.to_image_dto({"url": "/b.png"}) == ImageDTO(src="/b.png")
    assert BaseCollectionService.to_image_dto(None) is None
    assert BaseCollectionService.to_image_dto(42) is None
    assert BaseCollectionService.to_image_dto("/c.png") is None


def test_category_dtos(categories, seeded):
    dtos = categories.get_all_dto()
    assert [d.slug for d in dtos] == ["fruit", "vegetables"]
    fruit = dtos[0]
    assert isinstance(fruit, CategoryDTO)
    assert fruit.image == ImageDTO(src="/media/fruit.png", alt="Fruit", width=64, height=48)
    assert dtos[1].image is None


def test_dtos_are_frozen(categories, seeded):
    dto = categories.get_by_id_dto(seeded["fruit"])
    with pytest.raises(Exception):
        dto.name = "Changed"


def test_inactive_currency_rejected_by_mapper(session_factory, policy, seeded):
    currencies = CurrencyService(session_factory=session_factory, policy=policy)
    assert [c.code for c in currencies.get_all_dto()] == ["EUR"]

    dem = currencies.store.find_by_filter({"code": "DEM"})[0]
    assert currencies.get_by_id_dto(dem.id) is None
    # Raw access still sees the record
    assert currencies.get_by_id(dem.id).code == "DEM"
    assert currencies.get_by_id(dem.id).is_active is False
    eur = currencies.store.find_by_filter({"code": "EUR"})[0]
    assert eur.is_active is True


def test_tag_without_slug_not_indexed(session_factory, policy, seeded):
    tags = TagService(session_factory=session_factory, policy=policy)
    assert {t.name for t in tags.get_all_dto()} == {"New", "Untitled"}
    assert tags.get_by_slug_cached("new").name == "New"
    assert tags.get_by_slug_cached("") is None
    assert len(tags.cache.eager.snapshot.slug_index) == 1


# ===== CACHED READS =====

def test_cached_reads_hide_writes_until_invalidated(categories, seeded):
    fruit_id = seeded["fruit"]
    assert categories.get_by_id_dto(fruit_id).name == "Fruit"

    categories.store.update(fruit_id, {"name": "Fresh fruit"})
    assert categories.get_by_id_dto(fruit_id).name == "Fruit"

    categories.invalidate_cache(fruit_id)
    assert categories.get_by_id_dto(fruit_id).name == "Fresh fruit"


def test_cached_slug_and_raw_slug(categories, seeded):
    assert categories.get_by_slug_cached("fruit").id == seeded["fruit"]

    raw = categories.get_by_slug("fruit")
    assert isinstance(raw, Category)
    assert raw.name == "Fruit"
    assert categories.get_by_slug("nope") is None


def test_lazy_mode_service(session_factory, seeded):
    policy = StaticCachePolicy(ttl_seconds=60, loading_mode="lazy")
    categories = CategoryService(session_factory=session_factory, policy=policy, clock=FakeClock())

    assert categories.get_by_id_dto(seeded["vegetables"]).slug == "vegetables"
    assert categories.cache.lazy.entry_count() == 1
    assert categories.get_by_slug_cached("fruit").image.src == "/media/fruit.png"
    assert categories.cache.lazy.entry_count() == 2


def test_raw_get_by_id_returns_none_on_store_failure(policy):
    engine = make_engine("sqlite://")  # no tables
    categories = CategoryService(session_factory=make_session_factory(engine), policy=policy)

    assert categories.get_by_id(1) is None
    with pytest.raises(StoreFailureError):
        categories.get_by_id_dto(1)


def test_cached_service_needs_policy(session_factory):
    with pytest.raises(ConfigurationMissingError):
        CategoryService(session_factory=session_factory)


def test_service_needs_store_or_session_factory(policy):
    with pytest.raises(ConfigurationMissingError):
        CategoryService(policy=policy)


def test_cache_stats(categories, seeded):
    categories.get_all_dto()
    stats = categories.cache_stats()
    assert stats["collection"] == "categories"
    assert stats["eager"]["entries"] == 2
    assert stats["eager"]["slugs"] == 2
