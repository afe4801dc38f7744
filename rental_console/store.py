"""Record store gateway.

Every service reaches persistence through the five operations below (plus a
batched multi-get and a conditional update). Records are flat dicts keyed by
storage field name; identifiers are opaque strings assigned by the store.
No transaction spans two calls.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update as sql_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select

from . import database, models
from .errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


class RecordStore:
    """Async CRUD contract shared by the SQL and REST back ends."""

    async def get_all(self, collection: str, filters: Optional[Dict] = None) -> List[dict]:
        raise NotImplementedError

    async def get_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        raise NotImplementedError

    async def get_many(self, collection: str, ids: Iterable[str]) -> List[dict]:
        raise NotImplementedError

    async def create(self, collection: str, fields: dict) -> dict:
        raise NotImplementedError

    async def update(self, collection: str, record_id: str, fields: dict) -> dict:
        raise NotImplementedError

    async def update_where(self, collection: str, record_id: str, fields: dict,
                           expected: dict) -> Optional[dict]:
        """Apply ``fields`` only while the record still matches ``expected``.

        Returns the updated record, or ``None`` when the condition no longer
        holds. Raises ``NotFoundError`` if the record does not exist.
        """
        raise NotImplementedError

    async def delete(self, collection: str, record_id: str) -> None:
        raise NotImplementedError


def _as_dict(obj) -> dict:
    return {column.key: getattr(obj, column.key) for column in obj.__table__.columns}


class SqlRecordStore(RecordStore):
    """Record store backed by an async SQLAlchemy engine, one session per call."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or database.AsyncSessionLocal

    def _model(self, collection: str):
        try:
            return models.COLLECTIONS[collection]
        except KeyError:
            raise StoreError(f"Unknown collection '{collection}'", collection=collection)

    def _check_fields(self, model, collection: str, fields: dict, record_id: str = None):
        unknown = [name for name in fields if name not in model.__table__.columns]
        if unknown:
            raise StoreError(
                f"Unknown field(s) {', '.join(sorted(unknown))}",
                collection=collection,
                record_id=record_id
            )

    async def get_all(self, collection: str, filters: Optional[Dict] = None) -> List[dict]:
        model = self._model(collection)
        filters = filters or {}
        self._check_fields(model, collection, filters)

        query = select(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)

        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [_as_dict(obj) for obj in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error reading {collection}: {e}")
            raise StoreError(str(e), collection=collection) from e

    async def get_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        model = self._model(collection)
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(model).where(model.id == record_id))
                obj = result.scalar_one_or_none()
                return _as_dict(obj) if obj is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading {collection} {record_id}: {e}")
            raise StoreError(str(e), collection=collection, record_id=record_id) from e

    async def get_many(self, collection: str, ids: Iterable[str]) -> List[dict]:
        model = self._model(collection)
        ids = sorted({record_id for record_id in ids if record_id})
        if not ids:
            return []
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(model).where(model.id.in_(ids)))
                return [_as_dict(obj) for obj in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error reading {collection} batch: {e}")
            raise StoreError(str(e), collection=collection) from e

    async def create(self, collection: str, fields: dict) -> dict:
        model = self._model(collection)
        self._check_fields(model, collection, fields)

        async with self.session_factory() as session:
            try:
                obj = model(**fields)
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error creating {collection}: {e}")
                raise StoreError(str(e), collection=collection) from e

        logger.info(f"Created {collection} {obj.id}")
        return _as_dict(obj)

    async def update(self, collection: str, record_id: str, fields: dict) -> dict:
        model = self._model(collection)
        self._check_fields(model, collection, fields, record_id)

        async with self.session_factory() as session:
            try:
                result = await session.execute(select(model).where(model.id == record_id))
                obj = result.scalar_one_or_none()
                if obj is None:
                    raise NotFoundError(collection, record_id)

                for field, value in fields.items():
                    setattr(obj, field, value)

                await session.commit()
                await session.refresh(obj)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error updating {collection} {record_id}: {e}")
                raise StoreError(str(e), collection=collection, record_id=record_id) from e

        logger.info(f"Updated {collection} {record_id}: {sorted(fields)}")
        return _as_dict(obj)

    async def update_where(self, collection: str, record_id: str, fields: dict,
                           expected: dict) -> Optional[dict]:
        model = self._model(collection)
        self._check_fields(model, collection, fields, record_id)
        self._check_fields(model, collection, expected, record_id)

        statement = sql_update(model).where(model.id == record_id)
        for field, value in expected.items():
            statement = statement.where(getattr(model, field) == value)
        statement = statement.values(**fields).execution_options(synchronize_session=False)

        async with self.session_factory() as session:
            try:
                result = await session.execute(statement)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error updating {collection} {record_id}: {e}")
                raise StoreError(str(e), collection=collection, record_id=record_id) from e

        if result.rowcount == 0:
            current = await self.get_by_id(collection, record_id)
            if current is None:
                raise NotFoundError(collection, record_id)
            logger.info(f"Conditional update of {collection} {record_id} skipped, expected {expected}")
            return None

        logger.info(f"Updated {collection} {record_id} where {expected}: {sorted(fields)}")
        return await self.get_by_id(collection, record_id)

    async def delete(self, collection: str, record_id: str) -> None:
        model = self._model(collection)

        async with self.session_factory() as session:
            try:
                result = await session.execute(select(model).where(model.id == record_id))
                obj = result.scalar_one_or_none()
                if obj is None:
                    raise NotFoundError(collection, record_id)

                await session.delete(obj)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Error deleting {collection} {record_id}: {e}")
                raise StoreError(str(e), collection=collection, record_id=record_id) from e

        logger.info(f"Deleted {collection} {record_id}")


def make_store() -> RecordStore:
    from . import config

    if config.RECORD_STORE == "rest":
        from .rest_store import RestRecordStore
        return RestRecordStore(config.SUPABASE_URL, config.SUPABASE_KEY, timeout=config.STORE_TIMEOUT)
    return SqlRecordStore()
