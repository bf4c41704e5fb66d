# opportunity_hub/storage/json_collection.py
"""
File-backed document collection.

The whole collection is one JSON array on disk. Every mutating call reads the
full file, changes the in-memory list and rewrites the file, so two writers
running at the same time lose updates (last writer wins). The scheduler only
ever runs one sync at a time; reads may overlap freely.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import StorageError
from opportunity_hub.query.interpreter import (
    MISSING,
    FilterLike,
    SortSpec,
    matches,
    parse_filter,
    resolve_path,
    sort_records,
)
from opportunity_hub.storage.base import (
    CREATED_FIELD,
    ID_FIELD,
    UPDATED_FIELD,
    DocumentCollection,
    Record,
    UpsertResult,
    set_path,
    strip_store_fields,
)

logger = logging.getLogger(__name__)


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def to_jsonable(doc: Any) -> Any:
    """The exact shape a value takes after a round trip through the file."""
    return json.loads(json.dumps(doc, default=_encode_default))


def _new_id() -> str:
    return uuid.uuid4().hex


class JsonCollection(DocumentCollection):
    backend_name = "json"

    def __init__(
        self,
        path: str,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.path = path
        self._clock = clock
        self._new_id = id_factory
        self._ensure_file()

    # ------------------------------------------------------------------
    # Disk I/O
    # ------------------------------------------------------------------

    def _ensure_file(self) -> None:
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            if not os.path.exists(self.path):
                self._write_sync([])
        except OSError as exc:
            raise StorageError(f"cannot initialise {self.path}: {exc}") from exc

    def _read_sync(self) -> List[Record]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.error("Error reading %s: %s", self.path, exc)
            raise StorageError(f"cannot read {self.path}: {exc}") from exc

        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not hold a JSON array")
        return data

    def _write_sync(self, records: List[Record]) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, default=_encode_default)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as exc:
            logger.error("Error writing %s: %s", self.path, exc)
            raise StorageError(f"cannot write {self.path}: {exc}") from exc

    async def _read(self) -> List[Record]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, records: List[Record]) -> None:
        await asyncio.to_thread(self._write_sync, records)

    def _stamp_new(self, data: Mapping[str, Any]) -> Record:
        now = self._clock()
        record = {ID_FIELD: self._new_id(), **strip_store_fields(data)}
        record[CREATED_FIELD] = now
        record[UPDATED_FIELD] = now
        return to_jsonable(record)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find(
        self,
        flt: FilterLike = None,
        *,
        page: int = 1,
        limit: Optional[int] = 20,
        sort: SortSpec = None,
    ) -> Tuple[List[Record], int]:
        parsed = parse_filter(flt)
        data = [r for r in await self._read() if matches(r, parsed)]
        total = len(data)

        if sort:
            data = sort_records(data, sort)

        if limit is None:
            return data, total
        if limit <= 0:
            return [], total
        skip = (max(page, 1) - 1) * limit
        return data[skip:skip + limit], total

    async def find_one(self, flt: FilterLike = None) -> Optional[Record]:
        parsed = parse_filter(flt)
        for record in await self._read():
            if matches(record, parsed):
                return record
        return None

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        for record in await self._read():
            if record.get(ID_FIELD) == record_id:
                return record
        return None

    async def count(self, flt: FilterLike = None) -> int:
        data = await self._read()
        if not flt:
            return len(data)
        parsed = parse_filter(flt)
        return sum(1 for r in data if matches(r, parsed))

    async def distinct(self, path: str) -> List[Any]:
        seen: List[Any] = []
        for record in await self._read():
            value = resolve_path(record, path)
            if value is MISSING:
                continue
            for v in (value if isinstance(value, list) else [value]):
                if v not in seen:
                    seen.append(v)
        return seen

    # ------------------------------------------------------------------
    # Writes (whole-file read-modify-write)
    # ------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Record:
        records = await self._read()
        record = self._stamp_new(data)
        records.append(record)
        await self._write(records)
        return record

    async def insert_many(self, items: List[Mapping[str, Any]]) -> List[Record]:
        records = await self._read()
        new_records = [self._stamp_new(item) for item in items]
        records.extend(new_records)
        await self._write(records)
        return new_records

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        records = await self._read()
        for index, existing in enumerate(records):
            if existing.get(ID_FIELD) != record_id:
                continue
            merged = {**existing, **strip_store_fields(patch)}
            merged[UPDATED_FIELD] = self._clock()
            records[index] = to_jsonable(merged)
            await self._write(records)
            return records[index]
        return None

    async def update_many(self, flt: FilterLike, set_fields: Mapping[str, Any]) -> int:
        parsed = parse_filter(flt)
        records = await self._read()
        now = self._clock()
        modified = 0
        for index, record in enumerate(records):
            if not matches(record, parsed):
                continue
            for path, value in set_fields.items():
                set_path(record, path, value)
            record[UPDATED_FIELD] = now
            records[index] = to_jsonable(record)
            modified += 1

        if modified:
            await self._write(records)
        return modified

    async def upsert(self, flt: FilterLike, data: Mapping[str, Any]) -> UpsertResult:
        parsed = parse_filter(flt)
        records = await self._read()

        for index, existing in enumerate(records):
            if not matches(existing, parsed):
                continue
            merged = {
                **existing,
                **strip_store_fields(data),
                ID_FIELD: existing[ID_FIELD],
                CREATED_FIELD: existing.get(CREATED_FIELD),
                UPDATED_FIELD: self._clock(),
            }
            records[index] = to_jsonable(merged)
            await self._write(records)
            return UpsertResult(created=False, updated=True, record=records[index])

        record = self._stamp_new(data)
        records.append(record)
        await self._write(records)
        return UpsertResult(created=True, updated=False, record=record)

    async def delete(self, record_id: str) -> Optional[Record]:
        records = await self._read()
        for index, record in enumerate(records):
            if record.get(ID_FIELD) == record_id:
                deleted = records.pop(index)
                await self._write(records)
                return deleted
        return None

    async def clear(self) -> None:
        await self._write([])
