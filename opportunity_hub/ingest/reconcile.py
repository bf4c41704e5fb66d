# opportunity_hub/ingest/reconcile.py
"""
Upsert/dedup for incoming opportunities.

An incoming record is matched against the catalog by candidate keys, tried in
priority order:

    1. source.platform + source.source_id
    2. external_url
    3. title + source.platform

The first key that finds a stored record wins. If nothing matches the record
is created. If something matches, the update is only applied when the stored
copy is older than the freshness window or a significant field changed;
otherwise the record is skipped without touching the store.

Errors are not caught here; the sync runner isolates failures per record.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import InvalidOpportunityError
from opportunity_hub.query.interpreter import MISSING, as_datetime, resolve_path
from opportunity_hub.storage.base import ID_FIELD, UPDATED_FIELD, Record
from opportunity_hub.storage.facade import OpportunityStore

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(hours=1)
DATE_TOLERANCE = timedelta(seconds=1)
DATE_FIELDS = ("start_date", "end_date", "registration_deadline")

SIGNIFICANT_FIELDS = (
    "title",
    "description",
    "dates.start_date",
    "dates.end_date",
    "dates.registration_deadline",
    "location.city",
    "registration.is_open",
    "external_url",
)


class Outcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class ReconcileResult:
    outcome: Outcome
    record: Optional[Record] = None
    reason: Optional[str] = None  # stale | name of the first changed field

    @property
    def created(self) -> bool:
        return self.outcome is Outcome.CREATED

    @property
    def updated(self) -> bool:
        return self.outcome is Outcome.UPDATED

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED


# ------------------------------------------------------------------------------
# Matching
# ------------------------------------------------------------------------------

def _present(value: Any) -> bool:
    if value is None or value is MISSING:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def candidate_filters(doc: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Candidate-key filters in priority order; keys with a missing part are left out."""
    platform = resolve_path(doc, "source.platform")
    source_id = resolve_path(doc, "source.source_id")
    url = doc.get("external_url")
    title = doc.get("title")

    candidates: List[Dict[str, Any]] = []
    if _present(platform) and _present(source_id):
        candidates.append({"source.platform": platform, "source.source_id": source_id})
    if _present(url):
        candidates.append({"external_url": url})
    if _present(title) and _present(platform):
        candidates.append({"title": title, "source.platform": platform})
    return candidates


# ------------------------------------------------------------------------------
# Change detection
# ------------------------------------------------------------------------------

def values_differ(old: Any, new: Any) -> bool:
    """
    Dates differ only when more than a second apart, strings are compared
    trimmed and case-folded, anything else by plain inequality.
    """
    old = None if old is MISSING else old
    new = None if new is MISSING else new

    if isinstance(old, datetime) or isinstance(new, datetime):
        old_dt, new_dt = as_datetime(old), as_datetime(new)
        if old_dt is not None and new_dt is not None:
            return abs(old_dt - new_dt) > DATE_TOLERANCE

    if isinstance(old, str) and isinstance(new, str):
        old_dt, new_dt = as_datetime(old), as_datetime(new)
        if old_dt is not None and new_dt is not None:
            return abs(old_dt - new_dt) > DATE_TOLERANCE
        return old.strip().casefold() != new.strip().casefold()

    return old != new


def update_reason(
    existing: Mapping[str, Any],
    incoming: Mapping[str, Any],
    now: datetime,
    freshness_window: timedelta = FRESHNESS_WINDOW,
) -> Optional[str]:
    """Why `existing` should be overwritten by `incoming`, or None to skip."""
    last = resolve_path(existing, "source.last_updated")
    if last is MISSING or last is None:
        last = existing.get(UPDATED_FIELD)
    last_dt = as_datetime(last)
    if last_dt is None or now - last_dt > freshness_window:
        return "stale"

    for field in SIGNIFICANT_FIELDS:
        if values_differ(resolve_path(existing, field), resolve_path(incoming, field)):
            return field
    return None


# ------------------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------------------

class Reconciler:
    def __init__(
        self,
        store: OpportunityStore,
        *,
        clock: Callable[[], datetime] = utcnow,
        freshness_window: timedelta = FRESHNESS_WINDOW,
    ):
        self._store = store
        self._clock = clock
        self._freshness_window = freshness_window

    def _prepare(self, doc: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        source = dict(doc.get("source") or {})
        last_updated = as_datetime(source.get("last_updated"))
        if last_updated is not None:
            source["last_updated"] = last_updated
        elif not source.get("last_updated"):
            source["last_updated"] = now
        doc["source"] = source

        # date-like strings are stored as datetimes so range filters behave the
        # same on the database as on the file
        dates = doc.get("dates")
        if isinstance(dates, Mapping):
            dates = dict(dates)
            for key in DATE_FIELDS:
                parsed = as_datetime(dates.get(key))
                if parsed is not None:
                    dates[key] = parsed
            doc["dates"] = dates

        # is_active follows end_date; unparsable dates pass through untouched
        end = as_datetime(resolve_path(doc, "dates.end_date"))
        if end is not None:
            doc["is_active"] = end > now
        return doc

    async def find_existing(self, candidates: List[Dict[str, Any]]) -> Optional[Record]:
        for candidate in candidates:
            existing = await self._store.find_one(candidate)
            if existing is not None:
                return existing
        return None

    async def reconcile(self, incoming: Mapping[str, Any]) -> ReconcileResult:
        if not isinstance(incoming, Mapping):
            raise InvalidOpportunityError(f"expected a mapping, got {type(incoming).__name__}")
        if not _present(incoming.get("title")):
            raise InvalidOpportunityError("record has no title")

        candidates = candidate_filters(incoming)
        if not candidates:
            raise InvalidOpportunityError(f"no candidate key for {incoming.get('title')!r}")

        now = self._clock()
        doc = self._prepare(dict(incoming), now)

        existing = await self.find_existing(candidates)
        if existing is None:
            result = await self._store.upsert({"$or": candidates}, doc)
            outcome = Outcome.CREATED if result.created else Outcome.UPDATED
            return ReconcileResult(outcome, result.record)

        reason = update_reason(existing, doc, now, self._freshness_window)
        if reason is None:
            return ReconcileResult(Outcome.SKIPPED, existing)

        logger.debug("Field changed for %r: %s", existing.get("title"), reason)
        result = await self._store.upsert({ID_FIELD: existing[ID_FIELD]}, doc)
        return ReconcileResult(Outcome.UPDATED, result.record, reason)
