"""
Base classes for services backed by the record store.

BaseCollectionService is uncached: every read goes to the store. Use it
directly for large collections; small lookup collections should use the
cached subclasses in refcache.services.cached.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from refcache.errors import ConfigurationMissingError, StoreFailureError
from refcache.schemas import ImageDTO
from refcache.store import SQLAlchemyRecordStore

logger = logging.getLogger("services")


class BaseService:
    """
    Base for services not tied to one collection (aggregation, orchestration).

    Holds the database session factory and the cache policy handed out by
    the registry.
    """

    def __init__(self, session_factory=None, policy=None, **kwargs):
        self.session_factory = session_factory
        self.policy = policy


class BaseCollectionService(BaseService, ABC):
    """
    Service for a single collection: raw record access, DTO mapping and
    create/update/delete passthrough.

    Subclasses set `model` and implement to_dto() and select_fields().
    """

    model = None
    order_by: Optional[str] = None

    def __init__(self, session_factory=None, policy=None, store=None, **kwargs):
        super().__init__(session_factory, policy, **kwargs)
        if store is None:
            if session_factory is None:
                raise ConfigurationMissingError(
                    f"{type(self).__name__} needs a session factory or a store"
                )
            store = SQLAlchemyRecordStore(
                self.model, session_factory, order_by=self.order_by
            )
        self.store = store
        self.collection = store.collection

    @abstractmethod
    def to_dto(self, record) -> Optional[Any]:
        """Map a store record to a DTO, or None to leave it out."""

    @abstractmethod
    def select_fields(self) -> Optional[Sequence[str]]:
        """Fields to_dto() reads; full loads fetch only these."""

    @staticmethod
    def to_image_dto(img) -> Optional[ImageDTO]:
        """
        Map a media record (or any object with url/alt/width/height) to an
        ImageDTO. Use inside to_dto() for image fields.
        """
        if img is None or isinstance(img, (str, int, float, bool)):
            return None
        if isinstance(img, dict):
            get = img.get
        else:
            def get(name):
                return getattr(img, name, None)
        return ImageDTO(
            src=get("url"),
            alt=get("alt"),
            width=get("width"),
            height=get("height"),
        )

    # ===== RAW RECORDS =====

    def get_by_id(self, record_id: int):
        """Full record by id; None when absent or when the store fails."""
        try:
            return self.store.find_by_id(record_id)
        except StoreFailureError as e:
            logger.warning(f"{self.collection}: get_by_id({record_id}) failed: {e}")
            return None

    def get_all(self) -> List[Any]:
        return self.store.find_all()

    # ===== DTOS =====

    def get_by_id_dto(self, record_id: int):
        record = self.get_by_id(record_id)
        return self.to_dto(record) if record is not None else None

    def get_all_dto(self) -> List[Any]:
        dtos = (self.to_dto(record) for record in self.get_all())
        return [dto for dto in dtos if dto is not None]

    # ===== WRITES =====

    def create(self, data: Dict[str, Any]):
        return self.store.create(data)

    def update(self, record_id: int, data: Dict[str, Any]):
        return self.store.update(record_id, data)

    def delete(self, record_id: int) -> bool:
        return self.store.delete(record_id)
