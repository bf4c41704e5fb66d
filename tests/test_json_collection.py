"""File-backed collection: persistence, pagination, upsert, and failure modes."""
import asyncio
import json
from datetime import timedelta

import pytest

from opportunity_hub.core.errors import StorageError
from opportunity_hub.storage.json_collection import JsonCollection

from conftest import T0, make_opportunity


def test_creates_missing_file(json_collection):
    with open(json_collection.path, encoding="utf-8") as f:
        assert json.load(f) == []


def test_create_stamps_id_and_timestamps(json_collection):
    record = asyncio.run(json_collection.create(make_opportunity()))

    assert isinstance(record["_id"], str) and record["_id"]
    assert record["createdAt"] == T0.isoformat()
    assert record["updatedAt"] == T0.isoformat()
    # datetimes are persisted as ISO strings
    assert record["dates"]["start_date"] == (T0 + timedelta(days=10)).isoformat()


def test_create_ignores_caller_supplied_store_fields(json_collection):
    record = asyncio.run(json_collection.create({"title": "x", "_id": "mine", "createdAt": "yesterday"}))
    assert record["_id"] != "mine"
    assert record["createdAt"] == T0.isoformat()


def test_records_survive_a_new_instance(json_collection):
    async def scenario():
        created = await json_collection.create(make_opportunity())
        reopened = JsonCollection(json_collection.path)
        return created, await reopened.find_by_id(created["_id"])

    created, found = asyncio.run(scenario())
    assert found == created


def test_find_filters_sorts_and_paginates(json_collection):
    async def scenario():
        for i in range(5):
            await json_collection.create(
                make_opportunity(title=f"Hack {i}", source_id=f"h{i}", team_size={"max": 5 - i})
            )
        await json_collection.create(make_opportunity(title="Workshop", source_id="w", type="workshop"))
        return (
            await json_collection.find({"type": "hackathon"}, page=1, limit=2, sort={"team_size.max": 1}),
            await json_collection.find({"type": "hackathon"}, page=3, limit=2, sort={"team_size.max": 1}),
            await json_collection.find({"type": "hackathon"}, page=9, limit=2),
            await json_collection.find({}, limit=None),
        )

    first, last, beyond, everything = asyncio.run(scenario())
    assert [r["title"] for r in first[0]] == ["Hack 4", "Hack 3"]
    assert first[1] == 5
    assert [r["title"] for r in last[0]] == ["Hack 0"]
    assert beyond == ([], 5)
    assert len(everything[0]) == 6


def test_find_without_sort_keeps_insertion_order(json_collection):
    async def scenario():
        for title in ("b", "a", "c"):
            await json_collection.create({"title": title})
        return await json_collection.find({})

    items, total = asyncio.run(scenario())
    assert [r["title"] for r in items] == ["b", "a", "c"]
    assert total == 3


def test_find_one_returns_first_match(json_collection):
    async def scenario():
        await json_collection.create({"title": "a", "city": "Boston"})
        await json_collection.create({"title": "b", "city": "Boston"})
        return (
            await json_collection.find_one({"city": "Boston"}),
            await json_collection.find_one({"city": "Paris"}),
        )

    first, none = asyncio.run(scenario())
    assert first["title"] == "a"
    assert none is None


def test_update_merges_and_bumps_updated_at(json_collection, clock):
    async def scenario():
        created = await json_collection.create(make_opportunity())
        clock.advance(minutes=5)
        updated = await json_collection.update(created["_id"], {"description": "new", "_id": "other"})
        missing = await json_collection.update("nope", {"description": "x"})
        return created, updated, missing

    created, updated, missing = asyncio.run(scenario())
    assert updated["_id"] == created["_id"]
    assert updated["description"] == "new"
    assert updated["title"] == created["title"]
    assert updated["createdAt"] == created["createdAt"]
    assert updated["updatedAt"] == (T0 + timedelta(minutes=5)).isoformat()
    assert missing is None


def test_upsert_create_then_update(json_collection, clock):
    async def scenario():
        first = await json_collection.upsert({"external_url": "https://x.org"}, {"title": "X", "external_url": "https://x.org"})
        clock.advance(minutes=1)
        second = await json_collection.upsert({"external_url": "https://x.org"}, {"title": "X2", "external_url": "https://x.org"})
        return first, second, await json_collection.count({})

    first, second, total = asyncio.run(scenario())
    assert (first.created, first.updated) == (True, False)
    assert (second.created, second.updated) == (False, True)
    assert second.record["_id"] == first.record["_id"]
    assert second.record["createdAt"] == first.record["createdAt"]
    assert second.record["updatedAt"] != first.record["updatedAt"]
    assert second.record["title"] == "X2"
    assert total == 1


def test_update_many_sets_dotted_paths(json_collection, clock):
    async def scenario():
        await json_collection.insert_many([
            {"title": "a", "is_active": True},
            {"title": "b", "is_active": True},
            {"title": "c", "is_active": False},
        ])
        clock.advance(minutes=1)
        n = await json_collection.update_many({"is_active": True}, {"is_active": False, "source.last_updated": clock()})
        items, _ = await json_collection.find({}, limit=None)
        return n, items

    n, items = asyncio.run(scenario())
    assert n == 2
    assert all(r["is_active"] is False for r in items)
    assert items[0]["source"]["last_updated"] == clock().isoformat()
    assert "source" not in items[2]


def test_count_and_distinct(json_collection):
    async def scenario():
        await json_collection.insert_many([
            {"source": {"platform": "MLH"}, "tags": ["a", "b"]},
            {"source": {"platform": "Devpost"}, "tags": ["b"]},
            {"source": {"platform": "MLH"}},
            {"title": "no source"},
        ])
        return (
            await json_collection.count({"source.platform": "MLH"}),
            await json_collection.distinct("source.platform"),
            await json_collection.distinct("tags"),
        )

    count, platforms, tags = asyncio.run(scenario())
    assert count == 2
    assert platforms == ["MLH", "Devpost"]
    assert tags == ["a", "b"]


def test_delete_and_clear(json_collection):
    async def scenario():
        a = await json_collection.create({"title": "a"})
        await json_collection.create({"title": "b"})
        deleted = await json_collection.delete(a["_id"])
        after_delete = await json_collection.count()
        await json_collection.clear()
        return deleted, after_delete, await json_collection.count()

    deleted, after_delete, after_clear = asyncio.run(scenario())
    assert deleted["title"] == "a"
    assert after_delete == 1
    assert after_clear == 0


def test_corrupt_file_raises_storage_error(json_collection):
    with open(json_collection.path, "w", encoding="utf-8") as f:
        f.write("{not json")

    with pytest.raises(StorageError):
        asyncio.run(json_collection.find({}))


def test_non_array_file_raises_storage_error(json_collection):
    with open(json_collection.path, "w", encoding="utf-8") as f:
        json.dump({"title": "x"}, f)

    with pytest.raises(StorageError):
        asyncio.run(json_collection.count({}))


def test_write_leaves_no_temp_file(json_collection, tmp_path):
    asyncio.run(json_collection.create({"title": "a"}))
    assert sorted(p.name for p in (tmp_path / "data").iterdir()) == ["opportunities.json"]
