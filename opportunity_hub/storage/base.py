# opportunity_hub/storage/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from opportunity_hub.query.interpreter import FilterLike, SortSpec

Record = Dict[str, Any]

# Fields the store owns; incoming data never overrides them.
ID_FIELD = "_id"
CREATED_FIELD = "createdAt"
UPDATED_FIELD = "updatedAt"


@dataclass
class UpsertResult:
    created: bool
    updated: bool
    record: Record


def set_path(doc: Dict[str, Any], path: str, value: Any) -> None:
    """Assign `value` at a dotted path, creating intermediate dicts like `$set` does."""
    parts = path.split(".")
    current = doc
    for segment in parts[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, dict):
            nxt = {}
            current[segment] = nxt
        current = nxt
    current[parts[-1]] = value


def strip_store_fields(data: Mapping[str, Any]) -> Record:
    return {k: v for k, v in data.items() if k not in (ID_FIELD, CREATED_FIELD, UPDATED_FIELD)}


class DocumentCollection:
    """
    One logical collection of opportunity documents.

    Implementations: `JsonCollection` (single JSON file, filters evaluated in
    memory) and `MongoCollection` (native queries). Both must return the same
    records for the same filter.
    """

    backend_name = "abstract"

    async def find(
        self,
        flt: FilterLike = None,
        *,
        page: int = 1,
        limit: Optional[int] = 20,
        sort: SortSpec = None,
    ) -> Tuple[List[Record], int]:
        """Matching records for one page plus the total match count."""
        raise NotImplementedError

    async def find_one(self, flt: FilterLike = None) -> Optional[Record]:
        raise NotImplementedError

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        raise NotImplementedError

    async def create(self, data: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    async def insert_many(self, items: List[Mapping[str, Any]]) -> List[Record]:
        raise NotImplementedError

    async def update(self, record_id: str, patch: Mapping[str, Any]) -> Optional[Record]:
        """Shallow-merge `patch` over the record; None when the id is unknown."""
        raise NotImplementedError

    async def update_many(self, flt: FilterLike, set_fields: Mapping[str, Any]) -> int:
        """Apply dotted-path assignments to every match; returns the modified count."""
        raise NotImplementedError

    async def upsert(self, flt: FilterLike, data: Mapping[str, Any]) -> UpsertResult:
        raise NotImplementedError

    async def count(self, flt: FilterLike = None) -> int:
        raise NotImplementedError

    async def distinct(self, path: str) -> List[Any]:
        raise NotImplementedError

    async def delete(self, record_id: str) -> Optional[Record]:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError
