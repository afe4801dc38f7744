import asyncio
import json
import logging
from datetime import date, datetime
from functools import partial
from typing import Dict, Iterable, List, Optional

import aiohttp

from .errors import NotFoundError, StoreError
from .store import RecordStore

logger = logging.getLogger(__name__)


def _encode(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _filter_value(value) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    if isinstance(value, (datetime, date)):
        return f"eq.{value.isoformat()}"
    return f"eq.{value}"


class RestRecordStore(RecordStore):
    """Record store speaking PostgREST, the REST interface of the hosted database."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _url(self, collection: str) -> str:
        return f"{self.base_url}/rest/v1/{collection}"

    def _headers(self, representation: bool = False) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    async def _request(self, method: str, collection: str, params: dict = None,
                       body: dict = None, record_id: str = None) -> list:
        url = self._url(collection)
        try:
            async with aiohttp.ClientSession(
                    timeout=self.timeout,
                    json_serialize=partial(json.dumps, default=_encode)
            ) as session:
                async with session.request(
                        method,
                        url,
                        params=params,
                        json=body,
                        headers=self._headers(representation=method != "GET")
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Record store error: {method} {collection} - HTTP {response.status} - {error_text}")
                        raise StoreError(
                            f"HTTP {response.status}: {error_text}",
                            collection=collection,
                            record_id=record_id
                        )
                    if response.status == 204:
                        return []
                    return await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"Cannot reach record store: {e}")
            raise StoreError(f"Record store unavailable: {e}", collection=collection,
                             record_id=record_id) from e
        except asyncio.TimeoutError as e:
            logger.error(f"Record store timeout: {method} {collection}")
            raise StoreError("Record store timeout", collection=collection,
                             record_id=record_id) from e

    async def get_all(self, collection: str, filters: Optional[Dict] = None) -> List[dict]:
        params = {"select": "*"}
        for field, value in (filters or {}).items():
            params[field] = _filter_value(value)
        return await self._request("GET", collection, params=params)

    async def get_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        rows = await self._request(
            "GET", collection,
            params={"select": "*", "id": f"eq.{record_id}"},
            record_id=record_id
        )
        return rows[0] if rows else None

    async def get_many(self, collection: str, ids: Iterable[str]) -> List[dict]:
        ids = sorted({record_id for record_id in ids if record_id})
        if not ids:
            return []
        quoted = ",".join(f'"{record_id}"' for record_id in ids)
        return await self._request(
            "GET", collection,
            params={"select": "*", "id": f"in.({quoted})"}
        )

    async def create(self, collection: str, fields: dict) -> dict:
        rows = await self._request("POST", collection, body=fields)
        if not rows:
            raise StoreError("Record store returned no row", collection=collection)
        logger.info(f"Created {collection} {rows[0].get('id')}")
        return rows[0]

    async def update(self, collection: str, record_id: str, fields: dict) -> dict:
        rows = await self._request(
            "PATCH", collection,
            params={"id": f"eq.{record_id}"},
            body=fields,
            record_id=record_id
        )
        if not rows:
            raise NotFoundError(collection, record_id)
        logger.info(f"Updated {collection} {record_id}: {sorted(fields)}")
        return rows[0]

    async def update_where(self, collection: str, record_id: str, fields: dict,
                           expected: dict) -> Optional[dict]:
        params = {"id": f"eq.{record_id}"}
        for field, value in expected.items():
            params[field] = _filter_value(value)

        rows = await self._request("PATCH", collection, params=params, body=fields,
                                   record_id=record_id)
        if rows:
            logger.info(f"Updated {collection} {record_id} where {expected}: {sorted(fields)}")
            return rows[0]

        if await self.get_by_id(collection, record_id) is None:
            raise NotFoundError(collection, record_id)
        logger.info(f"Conditional update of {collection} {record_id} skipped, expected {expected}")
        return None

    async def delete(self, collection: str, record_id: str) -> None:
        rows = await self._request(
            "DELETE", collection,
            params={"id": f"eq.{record_id}"},
            record_id=record_id
        )
        if not rows:
            raise NotFoundError(collection, record_id)
        logger.info(f"Deleted {collection} {record_id}")
