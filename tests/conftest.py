"""
Shared fixtures for the cache and service tests.
"""
import os

# Keep the app's default engine off disk during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from refcache.cache import CollectionCache, LoadingMode, StaticCachePolicy
from refcache.db import init_db, make_engine, make_session_factory

from tests.helpers import FakeClock, FakeStore, make_record, thing_mapper


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return FakeStore([make_record(1), make_record(2), make_record(3)])


@pytest.fixture
def eager_policy():
    return StaticCachePolicy(ttl_seconds=1, loading_mode=LoadingMode.EAGER)


@pytest.fixture
def lazy_policy():
    return StaticCachePolicy(ttl_seconds=1, loading_mode=LoadingMode.LAZY)


@pytest.fixture
def make_cache(store, clock):
    """Build a slug-indexed CollectionCache over the fake store."""
    def _make(policy, index_slugs=True, selection=("id", "name", "slug")):
        return CollectionCache(
            store,
            thing_mapper,
            policy,
            selection=selection,
            index_slugs=index_slugs,
            clock=clock,
            label="Things",
        )
    return _make


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with every table created."""
    engine = make_engine("sqlite://", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)
