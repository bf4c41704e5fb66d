from __future__ import annotations

import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from opportunity_hub.core.clock import utcnow
from opportunity_hub.query.interpreter import resolve_path
from opportunity_hub.storage.facade import OpportunityStore

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

SORT_OPTIONS = {
    "start_date": {"dates.start_date": 1},
    "deadline": {"dates.registration_deadline": 1},
    "title": {"title": 1},
    "created": {"createdAt": -1},
}


def _split_skills(skills: Optional[Iterable[str] | str]) -> List[str]:
    if not skills:
        return []
    if isinstance(skills, str):
        skills = skills.split(",")
    return [s.strip() for s in skills if s and s.strip()]


def build_listing_query(
    *,
    location: Optional[str] = None,
    category: Optional[str] = None,
    mode: Optional[str] = None,
    skills: Optional[Iterable[str] | str] = None,
    search: Optional[str] = None,
    upcoming_only: bool = True,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Filter for the public listing. User text is regex-escaped; both `$or`
    groups (location and search) apply together when both are given.
    """
    now = now or utcnow()
    query: Dict[str, Any] = {"is_active": True}

    if upcoming_only:
        query["dates.end_date"] = {"$gte": now}

    or_groups: List[List[Dict[str, Any]]] = []

    if location and location.strip():
        loc = re.escape(location.strip())
        or_groups.append([
            {"location.city": {"$regex": loc, "$options": "i"}},
            {"location.state": {"$regex": loc, "$options": "i"}},
            {"location.country": {"$regex": loc, "$options": "i"}},
        ])

    if category and category != "all":
        query["type"] = category

    if mode and mode != "all":
        query["mode"] = mode

    skill_list = _split_skills(skills)
    if skill_list:
        query["skills_required"] = {
            "$in": [re.compile(re.escape(s), re.IGNORECASE) for s in skill_list]
        }

    if search and search.strip():
        term = re.escape(search.strip())
        or_groups.append([
            {"title": {"$regex": term, "$options": "i"}},
            {"description": {"$regex": term, "$options": "i"}},
            {"organizer": {"$regex": term, "$options": "i"}},
            {"tags": {"$in": [re.compile(term, re.IGNORECASE)]}},
        ])

    # a filter holds a single "$or" key; a second group becomes a nested $or
    if len(or_groups) == 1:
        query["$or"] = or_groups[0]
    elif or_groups:
        query["$or"] = [{**branch, "$or": or_groups[1]} for branch in or_groups[0]]

    return query


def clamp_paging(page: Any, limit: Any) -> Tuple[int, int]:
    try:
        page_num = int(page)
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = int(limit)
    except (TypeError, ValueError):
        limit_num = DEFAULT_PAGE_SIZE
    return max(1, page_num), min(MAX_PAGE_SIZE, max(1, limit_num))


async def list_opportunities(
    store: OpportunityStore,
    *,
    page: Any = 1,
    limit: Any = DEFAULT_PAGE_SIZE,
    location: Optional[str] = None,
    category: Optional[str] = None,
    mode: Optional[str] = None,
    skills: Optional[Iterable[str] | str] = None,
    search: Optional[str] = None,
    upcoming_only: bool = True,
    sort_by: str = "start_date",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Return one page of the catalog plus pagination info and the filters applied."""
    page_num, limit_num = clamp_paging(page, limit)
    query = build_listing_query(
        location=location,
        category=category,
        mode=mode,
        skills=skills,
        search=search,
        upcoming_only=upcoming_only,
        now=now,
    )
    sort = SORT_OPTIONS.get(sort_by, SORT_OPTIONS["start_date"])

    items, total = await store.find(query, page=page_num, limit=limit_num, sort=sort)

    total_pages = math.ceil(total / limit_num) if total else 0
    return {
        "data": items,
        "pagination": {
            "current_page": page_num,
            "total_pages": total_pages,
            "total_items": total,
            "items_per_page": limit_num,
            "has_next": page_num < total_pages,
            "has_previous": page_num > 1,
        },
        "filters_applied": {
            "location": location,
            "category": category,
            "skills": _split_skills(skills) or None,
            "mode": mode,
            "search": search,
            "upcoming_only": upcoming_only,
            "sort_by": sort_by,
        },
    }


async def get_opportunity(store: OpportunityStore, opportunity_id: str) -> Optional[Dict[str, Any]]:
    return await store.find_by_id(opportunity_id)


async def get_stats(store: OpportunityStore) -> Dict[str, Any]:
    return await store.stats()


# ------------------------------------------------------------------------------
# Search suggestions and filter options
# ------------------------------------------------------------------------------

SUGGESTION_LIMIT = 5
MIN_SUGGESTION_LENGTH = 2
LOCATION_FIELDS = ("location.city", "location.state", "location.country")


def _strings_at(record: Dict[str, Any], path: str) -> List[str]:
    value = resolve_path(record, path)
    values = value if isinstance(value, list) else [value]
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


def _first_distinct(
    records: List[Dict[str, Any]],
    paths: Iterable[str],
    pattern: "re.Pattern[str]",
    limit: int = SUGGESTION_LIMIT,
) -> List[str]:
    found: List[str] = []
    for record in records:
        for path in paths:
            for value in _strings_at(record, path):
                if pattern.search(value) and value not in found:
                    found.append(value)
                    if len(found) == limit:
                        return found
    return found


async def get_search_suggestions(store: OpportunityStore, q: Optional[str]) -> Dict[str, List[str]]:
    """
    Up to five titles, skills, locations and organizers of active listings
    containing `q`. Queries shorter than two characters get empty lists.
    """
    suggestions: Dict[str, List[str]] = {"titles": [], "skills": [], "locations": [], "organizers": []}
    if not q or len(q.strip()) < MIN_SUGGESTION_LENGTH:
        return suggestions

    term = re.escape(q.strip())
    pattern = re.compile(term, re.IGNORECASE)
    regex = {"$regex": term, "$options": "i"}
    by_title = {"title": 1}

    titles, _ = await store.find(
        {"is_active": True, "title": regex}, limit=SUGGESTION_LIMIT, sort=by_title
    )
    with_skill, _ = await store.find(
        {"is_active": True, "skills_required": {"$in": [pattern]}}, limit=None, sort=by_title
    )
    with_location, _ = await store.find(
        {"is_active": True, "$or": [{field: regex} for field in LOCATION_FIELDS]},
        limit=None,
        sort=by_title,
    )
    with_organizer, _ = await store.find(
        {"is_active": True, "organizer": regex}, limit=None, sort=by_title
    )

    suggestions["titles"] = [r["title"] for r in titles]
    suggestions["skills"] = _first_distinct(with_skill, ["skills_required"], pattern)
    suggestions["locations"] = _first_distinct(with_location, LOCATION_FIELDS, pattern)
    suggestions["organizers"] = _first_distinct(with_organizer, ["organizer"], pattern)
    return suggestions


def _ranked(counter: Counter, limit: Optional[int] = None) -> List[Tuple[Any, int]]:
    # most common first; ties by name so both backends agree
    ranked = sorted(counter.items(), key=lambda item: (-item[1], str(item[0])))
    return ranked[:limit] if limit else ranked


async def get_filter_options(store: OpportunityStore) -> Dict[str, List[Dict[str, Any]]]:
    """Popular skills, locations and organizers plus every type and mode, with counts over active listings."""
    active, _ = await store.find({"is_active": True}, limit=None)

    skills: Counter = Counter()
    locations: Counter = Counter()
    organizers: Counter = Counter()
    types: Counter = Counter()
    modes: Counter = Counter()

    for record in active:
        skills.update(_strings_at(record, "skills_required"))
        city = _strings_at(record, "location.city")
        if city:
            country = _strings_at(record, "location.country")
            locations[(city[0], country[0] if country else None)] += 1
        organizers.update(_strings_at(record, "organizer")[:1])
        types.update(_strings_at(record, "type")[:1])
        modes.update(_strings_at(record, "mode")[:1])

    return {
        "skills": [{"name": name, "count": n} for name, n in _ranked(skills, 20)],
        "locations": [
            {"city": city, "country": country, "count": n}
            for (city, country), n in _ranked(locations, 15)
        ],
        "organizers": [{"name": name, "count": n} for name, n in _ranked(organizers, 10)],
        "types": [{"name": name, "count": n} for name, n in _ranked(types)],
        "modes": [{"name": name, "count": n} for name, n in _ranked(modes)],
    }
