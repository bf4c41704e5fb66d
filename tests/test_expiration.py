"""Expiration sweep on both backends."""
import asyncio
from datetime import timedelta

import pytest

from opportunity_hub.ingest.expiration import ExpirationSweep
from opportunity_hub.ingest.reconcile import Reconciler

from conftest import T0, make_opportunity


def _seed(store):
    async def seed():
        await store.insert_many([
            make_opportunity(title="Ended", source_id="ended", is_active=True,
                             dates={"start_date": T0 - timedelta(days=4), "end_date": T0 - timedelta(days=2)}),
            make_opportunity(title="Ends later", source_id="later", is_active=True),
            make_opportunity(title="Already off", source_id="off", is_active=False,
                             dates={"start_date": T0 - timedelta(days=9), "end_date": T0 - timedelta(days=8)}),
            make_opportunity(title="No dates", source_id="nodates", is_active=True, dates={}),
        ])

    asyncio.run(seed())


@pytest.mark.parametrize("use_db", [False, True])
def test_deactivates_only_expired_active(dual_store, clock, use_db):
    dual_store.set_backend_available(use_db)
    _seed(dual_store)
    clock.advance(minutes=1)

    result = asyncio.run(ExpirationSweep(dual_store, clock=clock).run())
    assert result == {"deactivated": 1}

    ended = asyncio.run(dual_store.find_one({"title": "Ended"}))
    assert ended["is_active"] is False
    assert ended["updatedAt"] in (clock(), clock().isoformat())
    assert ended["source"]["last_updated"] in (clock(), clock().isoformat())
    assert ended["source"]["platform"] == "MLH"

    active = asyncio.run(dual_store.count({"is_active": True}))
    assert active == 2


@pytest.mark.parametrize("use_db", [False, True])
def test_second_pass_is_a_no_op(dual_store, clock, use_db):
    dual_store.set_backend_available(use_db)
    _seed(dual_store)
    sweep = ExpirationSweep(dual_store, clock=clock)

    assert asyncio.run(sweep.run())["deactivated"] == 1
    assert asyncio.run(sweep.run())["deactivated"] == 0


def test_explicit_now(store):
    _seed(store)
    later = T0 + timedelta(days=30)
    assert asyncio.run(ExpirationSweep(store).run(now=later)) == {"deactivated": 2}


@pytest.mark.parametrize("use_db", [False, True])
def test_string_dates_from_a_source_expire_on_both_backends(dual_store, clock, use_db):
    dual_store.set_backend_available(use_db)
    raw = make_opportunity(
        title="Short Jam",
        source_id="short",
        dates={
            "start_date": (T0 - timedelta(days=1)).isoformat(),
            "end_date": (T0 + timedelta(hours=1)).isoformat(),
            "registration_deadline": "not announced",
        },
        source={"platform": "MLH", "source_id": "short", "last_updated": T0.isoformat()},
    )
    created = asyncio.run(Reconciler(dual_store, clock=clock).reconcile(raw))
    assert created.created
    assert created.record["is_active"] is True
    assert created.record["dates"]["registration_deadline"] == "not announced"

    clock.advance(hours=2)
    ended, _ = asyncio.run(dual_store.find({"dates.end_date": {"$lt": clock()}}))
    assert [r["title"] for r in ended] == ["Short Jam"]

    assert asyncio.run(ExpirationSweep(dual_store, clock=clock).run()) == {"deactivated": 1}
    stored = asyncio.run(dual_store.find_one({"title": "Short Jam"}))
    assert stored["is_active"] is False
