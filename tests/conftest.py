"""
Shared fixtures: a controllable clock, both collection kinds, sample records.

The database-backed collection runs against mongomock, wrapped so its calls
are awaitable the way Motor's are.
"""
from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from opportunity_hub.storage.facade import OpportunityStore
from opportunity_hub.storage.json_collection import JsonCollection
from opportunity_hub.storage.mongo_collection import MongoCollection

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock for injection; `advance` moves it forward."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class AsyncCursor:
    """Motor-shaped cursor over a mongomock cursor."""

    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    def skip(self, n):
        self._cursor = self._cursor.skip(n)
        return self

    def limit(self, n):
        self._cursor = self._cursor.limit(n)
        return self

    async def to_list(self, length=None):
        docs = list(self._cursor)
        return docs if length is None else docs[:length]


class AsyncCollection:
    """Motor-shaped collection: every call on the mongomock collection becomes awaitable."""

    def __init__(self, collection):
        self._collection = collection

    def find(self, *args, **kwargs):
        return AsyncCursor(self._collection.find(*args, **kwargs))

    def __getattr__(self, name):
        method = getattr(self._collection, name)

        async def call(*args, **kwargs):
            return method(*args, **kwargs)

        return call


def make_opportunity(title="HackX", source_id="hackx-1", platform="MLH", **overrides):
    """A catalog document shaped like a fetcher would produce it."""
    doc = {
        "title": title,
        "description": "A weekend of building things.",
        "organizer": "Major League Hacking (MLH)",
        "type": "hackathon",
        "mode": "offline",
        "location": {"city": "Boston", "state": "MA", "country": "USA", "venue": "Campus"},
        "dates": {
            "start_date": T0 + timedelta(days=10),
            "end_date": T0 + timedelta(days=12),
            "registration_deadline": T0 + timedelta(days=5),
        },
        "skills_required": ["Python", "JavaScript"],
        "external_url": f"https://example.org/{source_id or title.lower()}",
        "source": {"platform": platform, "source_id": source_id},
        "tags": ["mlh", "hackathon"],
        "registration": {"is_open": True},
    }
    for key, value in overrides.items():
        doc[key] = value
    return doc


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def json_collection(tmp_path, clock):
    return JsonCollection(str(tmp_path / "data" / "opportunities.json"), clock=clock)


@pytest.fixture
def mongo_collection(clock):
    client = mongomock.MongoClient()
    return MongoCollection(AsyncCollection(client["opportunity_hub_test"]["opportunities"]), clock=clock)


@pytest.fixture
def store(json_collection):
    return OpportunityStore(json_collection)


@pytest.fixture
def dual_store(json_collection, mongo_collection):
    return OpportunityStore(json_collection, mongo_collection)
