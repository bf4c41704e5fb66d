from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from opportunity_hub.core.db import get_store
from opportunity_hub.ingest.runner import SyncRunner, build_runner
from opportunity_hub.services import opportunity_feed
from opportunity_hub.storage.facade import OpportunityStore

router = APIRouter(prefix="/api/opportunities", tags=["opportunities"])


def get_sync_runner(store: OpportunityStore = Depends(get_store)) -> SyncRunner:
    return build_runner(store)


@router.get("")
async def list_opportunities(
    page: int = 1,
    limit: int = 20,
    location: Optional[str] = None,
    category: Optional[str] = None,
    skills: Optional[str] = None,
    mode: Optional[str] = None,
    search: Optional[str] = None,
    upcoming_only: bool = True,
    sort_by: str = Query("start_date"),
    store: OpportunityStore = Depends(get_store),
):
    result = await opportunity_feed.list_opportunities(
        store,
        page=page,
        limit=limit,
        location=location,
        category=category,
        skills=skills,
        mode=mode,
        search=search,
        upcoming_only=upcoming_only,
        sort_by=sort_by,
    )
    return {"success": True, **result}


@router.get("/stats/overview")
async def stats_overview(store: OpportunityStore = Depends(get_store)):
    return {"success": True, "data": await opportunity_feed.get_stats(store)}


@router.get("/search/suggestions")
async def search_suggestions(q: Optional[str] = None, store: OpportunityStore = Depends(get_store)):
    return {"success": True, "data": await opportunity_feed.get_search_suggestions(store, q)}


@router.get("/filters/options")
async def filter_options(store: OpportunityStore = Depends(get_store)):
    return {"success": True, "data": await opportunity_feed.get_filter_options(store)}


@router.get("/{opportunity_id}")
async def get_opportunity(opportunity_id: str, store: OpportunityStore = Depends(get_store)):
    opportunity = await opportunity_feed.get_opportunity(store, opportunity_id)
    if not opportunity:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    return {"success": True, "data": opportunity}


@router.post("/sync")
async def trigger_sync(runner: SyncRunner = Depends(get_sync_runner)):
    """Run one synchronization now and return its summary."""
    result = await runner.run()
    return {"success": result.get("success", False), "data": result}
