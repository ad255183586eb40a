"""
refcache - FastAPI application
Reference collections (categories, tags, currencies) served from the
in-process cache, with write endpoints that invalidate it
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from config.settings import settings
from refcache.cache import SettingsCachePolicy
from refcache.db import SessionLocal, engine, init_db
from refcache.errors import ConfigurationMissingError, StoreFailureError
from refcache.hooks import create_invalidate_cache_hooks, register_invalidate_hooks
from refcache.registry import ServiceRegistry
from refcache.schemas import (
    CategoryCreate, CategoryDTO, CategoryUpdate, CurrencyDTO, InvalidateRequest, TagDTO,
)
from refcache.services import CategoryService, CurrencyService, TagService

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("main")

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "refcache"

app = FastAPI(
    title=APP_NAME,
    description="Cached reference data: categories, tags and currencies",
    version=APP_VERSION
)

registry = ServiceRegistry()

# Session factories that already carry the invalidate hooks
_hooked_factories = []

CACHED_SERVICES = {
    CategoryService: CategoryService.model,
    TagService: TagService.model,
    CurrencyService: CurrencyService.model,
}


def configure_app(session_factory=None, bind=None, policy=None, clock=None) -> ServiceRegistry:
    """
    (Re)wire the registry, create tables and attach invalidate hooks.

    Defaults to the settings-backed database and cache policy.
    """
    session_factory = session_factory or SessionLocal
    policy = policy or SettingsCachePolicy(settings)
    init_db(bind or engine)

    registry.reset()
    if clock is None:
        registry.configure(session_factory, policy)
    else:
        registry.configure(session_factory, policy, clock=clock)

    if any(factory is session_factory for factory in _hooked_factories):
        return registry
    _hooked_factories.append(session_factory)
    for service_cls, model in CACHED_SERVICES.items():
        hooks = create_invalidate_cache_hooks(
            lambda service_cls=service_cls: registry.get(service_cls)
        )
        register_invalidate_hooks(session_factory, model, hooks)
    return registry


def _find_cached_service(name: str) -> Optional[Any]:
    """A cached service by class name or collection name."""
    for service_cls, model in CACHED_SERVICES.items():
        if name in (service_cls.__name__, model.__tablename__):
            return registry.get(service_cls)
    return None


def _record_to_dict(record) -> Dict[str, Any]:
    """Column values of a raw record."""
    return {
        attr.key: getattr(record, attr.key)
        for attr in inspect(record).mapper.column_attrs
    }


@app.exception_handler(StoreFailureError)
def store_failure_handler(request: Request, exc: StoreFailureError):
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(ConfigurationMissingError)
def configuration_missing_handler(request: Request, exc: ConfigurationMissingError):
    logger.error(f"Configuration missing on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "mode": settings.cache_loading_mode,
        "configured": registry.is_configured,
    }


# ===== CATEGORIES =====

@app.get("/categories", response_model=List[CategoryDTO])
def list_categories():
    return registry.get(CategoryService).get_all_dto()


@app.get("/categories/slug/{slug}", response_model=CategoryDTO)
def get_category_by_slug(slug: str):
    category = registry.get(CategoryService).get_by_slug_cached(slug)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category '{slug}' not found")
    return category


@app.get("/categories/slug/{slug}/raw")
def get_category_record_by_slug(slug: str):
    """Full stored record, bypassing the cache."""
    record = registry.get(CategoryService).get_by_slug(slug)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Category '{slug}' not found")
    return _record_to_dict(record)


@app.get("/categories/{category_id}", response_model=CategoryDTO)
def get_category(category_id: int):
    category = registry.get(CategoryService).get_by_id_dto(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return category


@app.post("/categories", response_model=CategoryDTO, status_code=201)
def create_category(payload: CategoryCreate):
    service = registry.get(CategoryService)
    if payload.slug and service.get_by_slug(payload.slug) is not None:
        raise HTTPException(status_code=409, detail=f"Slug '{payload.slug}' already exists")
    record = service.create(payload.model_dump())
    return service.to_dto(record)


@app.patch("/categories/{category_id}", response_model=CategoryDTO)
def update_category(category_id: int, payload: CategoryUpdate):
    service = registry.get(CategoryService)
    record = service.update(category_id, payload.model_dump(exclude_unset=True))
    if record is None:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return service.to_dto(record)


@app.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: int):
    if not registry.get(CategoryService).delete(category_id):
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")


# ===== TAGS =====

@app.get("/tags", response_model=List[TagDTO])
def list_tags():
    return registry.get(TagService).get_all_dto()


@app.get("/tags/slug/{slug}", response_model=TagDTO)
def get_tag_by_slug(slug: str):
    tag = registry.get(TagService).get_by_slug_cached(slug)
    if tag is None:
        raise HTTPException(status_code=404, detail=f"Tag '{slug}' not found")
    return tag


@app.get("/tags/{tag_id}", response_model=TagDTO)
def get_tag(tag_id: int):
    tag = registry.get(TagService).get_by_id_dto(tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail=f"Tag {tag_id} not found")
    return tag


# ===== CURRENCIES =====

@app.get("/currencies", response_model=List[CurrencyDTO])
def list_currencies():
    return registry.get(CurrencyService).get_all_dto()


@app.get("/currencies/{currency_id}", response_model=CurrencyDTO)
def get_currency(currency_id: int):
    currency = registry.get(CurrencyService).get_by_id_dto(currency_id)
    if currency is None:
        raise HTTPException(status_code=404, detail=f"Currency {currency_id} not found")
    return currency


# ===== CACHE ADMIN =====

@app.get("/cache/stats")
def cache_stats():
    """Get cache statistics for every built service."""
    return {
        type(service).__name__: service.cache_stats()
        for service in registry.services()
        if hasattr(service, "cache_stats")
    }


@app.post("/cache/invalidate")
def invalidate_cache(payload: InvalidateRequest):
    """Invalidate one service's cache (one id in lazy mode), or all with '*'."""
    if payload.service == "*":
        return {"invalidated": registry.invalidate_all()}

    service = _find_cached_service(payload.service)
    if service is None:
        raise HTTPException(status_code=404, detail=f"No cached service '{payload.service}'")
    service.invalidate_cache(payload.id)
    return {"invalidated": 1}


configure_app()
