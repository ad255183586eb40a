"""
Record store over a SQLAlchemy model
Read queries the caches consume plus create/update/delete passthrough
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, load_only
from sqlalchemy.orm.properties import ColumnProperty
from sqlalchemy.orm.relationships import RelationshipProperty

from refcache.errors import StoreFailureError

logger = logging.getLogger("store")


class SQLAlchemyRecordStore:
    """
    One collection (one ORM model) behind the RecordSource interface.

    Every call opens its own short session; returned records are detached
    and only their loaded attributes may be read. Any SQLAlchemy error is
    raised as StoreFailureError.
    """

    def __init__(
        self,
        model,
        session_factory,
        collection: Optional[str] = None,
        order_by: Optional[str] = None,
    ):
        self.model = model
        self.collection = collection or model.__tablename__
        self._session_factory = session_factory
        self._order_by = order_by

    def _fail(self, operation: str, exc: Exception) -> StoreFailureError:
        logger.warning(f"{self.collection}.{operation} failed: {exc}")
        return StoreFailureError(self.collection, operation, str(exc))

    def _ordered(self, stmt):
        if self._order_by:
            stmt = stmt.order_by(getattr(self.model, self._order_by))
        return stmt.order_by(self.model.id)

    def _selection_options(self, selection: Optional[Sequence[str]]) -> list:
        """
        load_only() for selected columns, joinedload() for selected relationships
        """
        if not selection:
            return []
        mapper = self.model.__mapper__
        columns, relations = [], []
        for name in selection:
            prop = mapper.attrs.get(name)
            if isinstance(prop, ColumnProperty):
                columns.append(getattr(self.model, name))
            elif isinstance(prop, RelationshipProperty):
                relations.append(joinedload(getattr(self.model, name)))
            else:
                raise ValueError(f"{self.collection} has no field {name!r}")
        options = list(relations)
        if columns:
            options.append(load_only(*columns))
        return options

    # ===== READS =====

    def find_by_id(self, record_id: int) -> Optional[Any]:
        """
        Get a record by ID, None if absent
        """
        try:
            with self._session_factory() as session:
                return session.get(self.model, record_id)
        except SQLAlchemyError as e:
            raise self._fail("find_by_id", e) from e

    def find_all(self, selection: Optional[Sequence[str]] = None) -> List[Any]:
        """
        Get every record, restricted to the selected fields when given
        """
        stmt = self._ordered(select(self.model)).options(
            *self._selection_options(selection)
        )
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt).unique().all())
        except SQLAlchemyError as e:
            raise self._fail("find_all", e) from e

    def find_by_filter(
        self,
        where: Mapping[str, Any],
        limit: Optional[int] = None,
    ) -> List[Any]:
        """
        Get records whose fields equal the values in where
        """
        stmt = self._ordered(select(self.model).filter_by(**where))
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt).unique().all())
        except SQLAlchemyError as e:
            raise self._fail("find_by_filter", e) from e

    # ===== WRITES =====

    def create(self, data: Dict[str, Any]) -> Any:
        """
        Insert a record and return it
        """
        try:
            with self._session_factory() as session:
                with session.begin():
                    record = self.model(**data)
                    session.add(record)
                record_id = record.id
            return self.find_by_id(record_id)
        except SQLAlchemyError as e:
            raise self._fail("create", e) from e

    def update(self, record_id: int, data: Dict[str, Any]) -> Optional[Any]:
        """
        Apply data to a record, None if it does not exist
        """
        try:
            with self._session_factory() as session:
                with session.begin():
                    record = session.get(self.model, record_id)
                    if record is None:
                        return None
                    for key, value in data.items():
                        setattr(record, key, value)
            return self.find_by_id(record_id)
        except SQLAlchemyError as e:
            raise self._fail("update", e) from e

    def delete(self, record_id: int) -> bool:
        """
        Delete a record, True if it existed
        """
        try:
            with self._session_factory() as session:
                with session.begin():
                    record = session.get(self.model, record_id)
                    if record is None:
                        return False
                    session.delete(record)
                return True
        except SQLAlchemyError as e:
            raise self._fail("delete", e) from e
