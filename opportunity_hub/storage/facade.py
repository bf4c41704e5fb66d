# opportunity_hub/storage/facade.py
"""
One entry point for catalog reads and writes.

`OpportunityStore` owns both collections and a single flag saying whether the
database is reachable; every call is routed to the Mongo collection when it
is, and to the JSON file otherwise. Callers never learn which one answered.
Flipping the flag does not copy data between backends.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import StorageError
from opportunity_hub.query.interpreter import FilterLike, SortSpec
from opportunity_hub.storage.base import DocumentCollection, Record, UpsertResult

logger = logging.getLogger(__name__)


class OpportunityStore:
    def __init__(
        self,
        file_collection: DocumentCollection,
        db_collection: Optional[DocumentCollection] = None,
        *,
        backend_available: bool = False,
    ):
        self._file = file_collection
        self._db = db_collection
        self._backend_available = False
        self.set_backend_available(backend_available)

    # ------------------------------------------------------------------
    # Backend selection
    # ------------------------------------------------------------------

    def set_backend_available(self, available: bool) -> None:
        if available and self._db is None:
            raise StorageError("database reported available but no database collection is configured")
        if available != self._backend_available:
            logger.info("Storage backend switched to %s", "mongo" if available else "json")
        self._backend_available = available

    @property
    def backend_available(self) -> bool:
        return self._backend_available

    @property
    def active(self) -> DocumentCollection:
        return self._db if self._backend_available else self._file

    @property
    def backend_name(self) -> str:
        return self.active.backend_name

    # ------------------------------------------------------------------
    # Delegated operations
    # ------------------------------------------------------------------

    async def find(
        self,
        flt: FilterLike = None,
        *,
        page: int = 1,
        limit: Optional[int] = 20,
        sort: SortSpec = None,
    ) -> Tuple[List[Record], int]:
        return await self.active.find(flt, page=page, limit=limit, sort=sort)

    async def find_one(self, flt: FilterLike = None) -> Optional[Record]:
        return await self.active.find_one(flt)

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        return await self.active.find_by_id(record_id)

    async def create(self, data: Mapping[str, Any]) -> Record:
        return await self.active.create(data)

    async def insert_many(self, items: List[Mapping[str, Any]]) -> List[Record]:
        return await self.active.insert_many(items)

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        return await self.active.update(record_id, patch)

    async def update_many(self, flt: FilterLike, set_fields: Mapping[str, Any]) -> int:
        return await self.active.update_many(flt, set_fields)

    async def upsert(self, flt: FilterLike, data: Mapping[str, Any]) -> UpsertResult:
        return await self.active.upsert(flt, data)

    async def count(self, flt: FilterLike = None) -> int:
        return await self.active.count(flt)

    async def distinct(self, path: str) -> List[Any]:
        return await self.active.distinct(path)

    async def delete(self, record_id: str) -> Optional[Record]:
        return await self.active.delete(record_id)

    async def clear(self) -> None:
        await self.active.clear()

    @property
    def has_database(self) -> bool:
        return self._db is not None

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------

    async def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Headline counts plus a per-platform breakdown."""
        now = now or utcnow()
        total = await self.count({})
        active = await self.count({"is_active": True})
        # start_date > now, expressed with the supported operator set
        upcoming = (
            await self.count({"dates.start_date": {"$gte": now}})
            - await self.count({"dates.start_date": now})
        )

        by_platform = []
        for platform in await self.distinct("source.platform"):
            by_platform.append({
                "_id": platform,
                "count": await self.count({"source.platform": platform}),
                "active": await self.count({"source.platform": platform, "is_active": True}),
            })

        return {
            "overview": {"total": total, "active": active, "upcoming": upcoming},
            "byPlatform": by_platform,
        }
