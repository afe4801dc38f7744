import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from .. import rules
from ..errors import NotFoundError, StoreError
from ..store import RecordStore

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_VEHICLE = "Unknown Vehicle"
UNKNOWN_CATEGORY = "Unknown Category"
UNKNOWN_TECHNICIAN = "Unknown Technician"
UNKNOWN_INVOICE = "Unknown Invoice"


def storage_name(field: str) -> str:
    """``pickup_date`` -> ``pickupdate``, the hosted schema's column naming."""
    return field.replace("_", "")


def person_name(record: dict) -> str:
    return f"{record.get('firstname', '')} {record.get('lastname', '')}".strip()


def vehicle_description(record: dict) -> str:
    return f"{record.get('make')} {record.get('model')} ({record.get('year')})"


class EntityService:
    """CRUD over one collection with storage <-> service field renaming.

    Subclasses set ``collection`` and ``schema`` (the read model) and may
    override the ``before_*``/``after_*`` hooks and ``present`` to attach
    display fields.
    """

    collection: str = None
    schema = None
    # rules.TRANSITIONS key checked on status updates
    status_kind: Optional[str] = None

    def __init__(self, store: RecordStore):
        self.store = store

    # --- mapping ---

    def to_storage(self, fields: dict) -> dict:
        return {storage_name(name): value for name, value in fields.items()}

    def from_storage(self, record: dict) -> dict:
        names = {storage_name(name): name for name in self.schema.model_fields}
        return {names[key]: value for key, value in record.items() if key in names}

    def build(self, record: dict, **display):
        return self.schema.model_validate({**self.from_storage(record), **display})

    @contextmanager
    def failure(self, action: str, record_id: str = None):
        """Re-raise store errors with what was being done and to which record."""
        try:
            yield
        except StoreError as e:
            raise StoreError(
                e.message,
                collection=self.collection,
                record_id=record_id or e.record_id,
                action=action
            ) from e

    async def lookup(self, collection: str, ids: Iterable[str]) -> Dict[str, dict]:
        """Batched fetch of referenced records for display fields.

        A failed lookup degrades to an empty mapping so callers fall back to
        placeholder strings instead of failing the whole listing.
        """
        ids = {record_id for record_id in ids if record_id}
        if not ids:
            return {}
        try:
            records = await self.store.get_many(collection, ids)
        except StoreError as e:
            logger.warning(f"Could not resolve {collection} for {self.collection}: {e}")
            return {}
        return {record["id"]: record for record in records}

    # --- hooks ---

    async def present(self, records: List[dict]) -> list:
        return [self.build(record) for record in records]

    async def before_create(self, fields: dict) -> dict:
        return fields

    async def after_create(self, created):
        pass

    async def before_update(self, current, changes: dict) -> dict:
        return changes

    async def after_update(self, current, updated, changes: dict):
        pass

    async def after_delete(self, deleted):
        pass

    # --- operations ---

    async def list(self, **filters) -> list:
        with self.failure("load"):
            records = await self.store.get_all(self.collection, self.to_storage(filters) or None)
        return await self.present(records)

    async def fetch(self, record_id: str):
        """Load one record without resolving display fields."""
        with self.failure("load", record_id):
            record = await self.store.get_by_id(self.collection, record_id)
        if record is None:
            raise NotFoundError(self.collection, record_id)
        return self.build(record)

    async def get(self, record_id: str):
        with self.failure("load", record_id):
            record = await self.store.get_by_id(self.collection, record_id)
        if record is None:
            raise NotFoundError(self.collection, record_id)
        return (await self.present([record]))[0]

    async def create(self, data):
        fields = data.model_dump(exclude_none=True) if isinstance(data, BaseModel) else dict(data)
        fields = await self.before_create(fields)

        with self.failure("save"):
            record = await self.store.create(self.collection, self.to_storage(fields))

        created = (await self.present([record]))[0]
        await self.after_create(created)
        return created

    async def update(self, record_id: str, data):
        changes = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        current = await self.fetch(record_id)

        if self.status_kind and changes.get("status") is not None:
            rules.check_transition(self.status_kind, current.status, changes["status"])
        changes = await self.before_update(current, changes)
        if not changes:
            return await self.get(record_id)

        with self.failure("save", record_id):
            record = await self.store.update(self.collection, record_id, self.to_storage(changes))

        updated = (await self.present([record]))[0]
        await self.after_update(current, updated, changes)
        return updated

    async def delete(self, record_id: str):
        current = await self.fetch(record_id)
        with self.failure("delete", record_id):
            await self.store.delete(self.collection, record_id)
        await self.after_delete(current)
