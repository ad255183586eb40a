"""
Cache invalidation hooks for writes to cached collections.

create_invalidate_cache_hooks() builds the callables; register_invalidate_hooks()
attaches them to a SQLAlchemy session factory so every committed insert,
update or delete of a model invalidates the owning service.

Usage:
    category_hooks = create_invalidate_cache_hooks(
        lambda: registry.get(CategoryService)
    )
    register_invalidate_hooks(SessionLocal, Category, category_hooks)
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Tuple

from sqlalchemy import event

logger = logging.getLogger("hooks")

_PENDING_PREFIX = "refcache_invalidations:"

CHANGE = "change"
DELETE = "delete"


def _record_id(record) -> int:
    record_id = record["id"] if isinstance(record, dict) else record.id
    return record_id if isinstance(record_id, int) else int(record_id)


@dataclass(frozen=True)
class InvalidateCacheHooks:
    """after_change / after_delete callables; each returns the record it got."""
    after_change: Callable[[Any], Any]
    after_delete: Callable[[Any], Any]


def create_invalidate_cache_hooks(get_service: Callable[[], Any]) -> InvalidateCacheHooks:
    """
    Build hooks that call invalidate_cache(id) on a service.

    get_service is called when a hook runs, not when the hooks are built,
    so hooks can be declared before the registry is configured.
    """

    def after_change(record):
        service = get_service()
        service.invalidate_cache(_record_id(record))
        return record

    def after_delete(record):
        service = get_service()
        service.invalidate_cache(_record_id(record))
        return record

    return InvalidateCacheHooks(after_change=after_change, after_delete=after_delete)


def register_invalidate_hooks(session_factory, model, hooks: InvalidateCacheHooks) -> None:
    """
    Run hooks for every committed write to model through session_factory.

    Writes are collected at flush time and dispatched after commit; a
    rollback discards them. The hooks read record ids after commit, so the
    session factory must use expire_on_commit=False.
    """
    pending_key = _PENDING_PREFIX + model.__name__

    def collect(session, flush_context):
        pending: List[Tuple[str, Any]] = session.info.setdefault(pending_key, [])
        for obj in session.new:
            if isinstance(obj, model):
                pending.append((CHANGE, obj))
        for obj in session.dirty:
            if isinstance(obj, model) and session.is_modified(obj):
                pending.append((CHANGE, obj))
        for obj in session.deleted:
            if isinstance(obj, model):
                pending.append((DELETE, obj))

    def dispatch(session):
        pending = session.info.pop(pending_key, None)
        if not pending:
            return
        for kind, obj in pending:
            hook = hooks.after_delete if kind == DELETE else hooks.after_change
            logger.debug(f"{kind} {model.__name__} id={obj.id}: invalidating cache")
            hook(obj)

    def discard(session):
        session.info.pop(pending_key, None)

    event.listen(session_factory, "after_flush", collect)
    event.listen(session_factory, "after_commit", dispatch)
    event.listen(session_factory, "after_rollback", discard)
