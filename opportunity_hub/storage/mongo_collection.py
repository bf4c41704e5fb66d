# opportunity_hub/storage/mongo_collection.py
"""
Database-backed document collection: a thin pass-through to a Motor
collection. Filters are sent to the server unchanged apart from making the
default case-insensitive regex option explicit, so results line up with the
in-memory interpreter used by the JSON collection.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pymongo import ReturnDocument

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import QueryError
from opportunity_hub.query.interpreter import (
    Filter,
    FilterLike,
    SortSpec,
    normalize_sort,
    with_default_regex_options,
)
from opportunity_hub.storage.base import (
    CREATED_FIELD,
    ID_FIELD,
    UPDATED_FIELD,
    DocumentCollection,
    Record,
    UpsertResult,
    strip_store_fields,
)


def _aware(value: Any) -> Any:
    """The driver hands back naive UTC datetimes; make them aware."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, dict):
        return {k: _aware(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_aware(v) for v in value]
    return value


def _new_id() -> str:
    return uuid.uuid4().hex


class MongoCollection(DocumentCollection):
    backend_name = "mongo"

    def __init__(
        self,
        collection,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        # collection: motor.motor_asyncio.AsyncIOMotorCollection (or a compatible double)
        self._collection = collection
        self._clock = clock
        self._new_id = id_factory

    @staticmethod
    def _native(flt: FilterLike) -> Dict[str, Any]:
        if flt is None:
            return {}
        if isinstance(flt, Filter):
            raise QueryError("parsed filters cannot be sent to the database; pass the raw dict")
        return with_default_regex_options(dict(flt))

    def _stamp_new(self, data: Mapping[str, Any]) -> Record:
        now = self._clock()
        doc = {ID_FIELD: self._new_id(), **strip_store_fields(data)}
        doc[CREATED_FIELD] = now
        doc[UPDATED_FIELD] = now
        return doc

    async def find(
        self,
        flt: FilterLike = None,
        *,
        page: int = 1,
        limit: Optional[int] = 20,
        sort: SortSpec = None,
    ) -> Tuple[List[Record], int]:
        native = self._native(flt)
        if limit is not None and limit <= 0:
            return [], await self._collection.count_documents(native)

        cursor = self._collection.find(native)
        sort_spec = normalize_sort(sort)
        if sort_spec:
            cursor = cursor.sort(sort_spec)
        if limit is not None:
            cursor = cursor.skip((max(page, 1) - 1) * limit).limit(limit)

        items, total = await asyncio.gather(
            cursor.to_list(length=None),
            self._collection.count_documents(native),
        )
        return [_aware(doc) for doc in items], total

    async def find_one(self, flt: FilterLike = None) -> Optional[Record]:
        doc = await self._collection.find_one(self._native(flt))
        return _aware(doc) if doc is not None else None

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        doc = await self._collection.find_one({ID_FIELD: record_id})
        return _aware(doc) if doc is not None else None

    async def count(self, flt: FilterLike = None) -> int:
        return await self._collection.count_documents(self._native(flt))

    async def distinct(self, path: str) -> List[Any]:
        return list(await self._collection.distinct(path))

    async def create(self, data: Mapping[str, Any]) -> Record:
        doc = self._stamp_new(data)
        await self._collection.insert_one(doc)
        return _aware(doc)

    async def insert_many(self, items: List[Mapping[str, Any]]) -> List[Record]:
        docs = [self._stamp_new(item) for item in items]
        if docs:
            await self._collection.insert_many(docs)
        return [_aware(doc) for doc in docs]

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        doc = await self._collection.find_one_and_update(
            {ID_FIELD: record_id},
            {"$set": {**strip_store_fields(patch), UPDATED_FIELD: self._clock()}},
            return_document=ReturnDocument.AFTER,
        )
        return _aware(doc) if doc is not None else None

    async def update_many(self, flt: FilterLike, set_fields: Mapping[str, Any]) -> int:
        result = await self._collection.update_many(
            self._native(flt),
            {"$set": {**set_fields, UPDATED_FIELD: self._clock()}},
        )
        return result.modified_count

    async def upsert(self, flt: FilterLike, data: Mapping[str, Any]) -> UpsertResult:
        existing = await self._collection.find_one(self._native(flt))
        if existing is None:
            return UpsertResult(created=True, updated=False, record=await self.create(data))

        record = await self.update(existing[ID_FIELD], data)
        return UpsertResult(created=False, updated=True, record=record)

    async def delete(self, record_id: str) -> Optional[Record]:
        doc = await self._collection.find_one_and_delete({ID_FIELD: record_id})
        return _aware(doc) if doc is not None else None

    async def clear(self) -> None:
        await self._collection.delete_many({})
