# opportunity_hub/ingest/runner.py
import asyncio
import inspect
import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import InvalidOpportunityError, StorageError
from opportunity_hub.ingest.base import title_of, to_document
from opportunity_hub.ingest.expiration import ExpirationSweep
from opportunity_hub.ingest.mlh import MLHFetcher
from opportunity_hub.ingest.reconcile import Outcome, Reconciler
from opportunity_hub.storage.facade import OpportunityStore

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# Report types
# ------------------------------------------------------------------------------

@dataclass
class RecordResult:
    """Outcome of one incoming record: either an Outcome or an error message."""
    title: str
    outcome: Optional[Outcome] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SourceReport:
    key: str
    results: List[RecordResult] = field(default_factory=list)
    error: Optional[str] = None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.ok and r.outcome is outcome)

    @property
    def new(self) -> int:
        return self._count(Outcome.CREATED)

    @property
    def updated(self) -> int:
        return self._count(Outcome.UPDATED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def skipped(self) -> int:
        # failed records are reported as skipped
        return self._count(Outcome.SKIPPED) + self.failed

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"new": self.new, "updated": self.updated, "skipped": self.skipped}
        if self.error:
            out["error"] = self.error
        return out


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

async def _collect_from_source(fn) -> List:
    """Call either a sync or async fetch and return its records as a list."""
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return list(result or [])


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ------------------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------------------

class SyncRunner:
    """
    One full synchronization: pick the backend, fetch every source (falling
    back to its bundled sample set), reconcile record by record, then sweep
    expired listings. `run()` always returns a summary dict; it never raises.
    """

    def __init__(
        self,
        store: OpportunityStore,
        sources: Sequence[Any],
        *,
        backend_probe: Optional[Callable[[], Awaitable[bool]]] = None,
        reconciler: Optional[Reconciler] = None,
        sweep: Optional[ExpirationSweep] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._sources = list(sources)
        self._backend_probe = backend_probe
        self._reconciler = reconciler or Reconciler(store, clock=clock)
        self._sweep = sweep or ExpirationSweep(store, clock=clock)

    async def _select_backend(self) -> None:
        if self._backend_probe is not None:
            self._store.set_backend_available(await self._backend_probe())
        logger.info("Using %s storage", self._store.backend_name)
        # an unreadable collection is fatal; better to find out before the loop
        await self._store.count({})

    async def _fetch(self, source) -> tuple:
        try:
            return await _collect_from_source(source.fetch_opportunities), None
        except Exception as exc:
            logger.warning("Fetching %s failed: %s; using sample %s data", source.key, exc, source.key)
            return await _collect_from_source(source.fallback_opportunities), str(exc)

    async def _reconcile_batch(self, key: str, batch: List, fetch_error: Optional[str]) -> SourceReport:
        report = SourceReport(key=key, error=fetch_error)

        for item in batch:
            title = title_of(item)
            try:
                doc = to_document(item)
                if doc is None:
                    raise InvalidOpportunityError(f"unsupported record type {type(item).__name__}")
                result = await self._reconciler.reconcile(doc)
            except StorageError:
                # the store itself is broken, not this record
                raise
            except Exception as exc:
                logger.warning('Failed to process opportunity "%s": %s', title, exc)
                report.results.append(RecordResult(title=title, error=str(exc)))
                continue

            if result.created:
                logger.info("Created: %s", title)
            elif result.updated:
                logger.info("Updated: %s (%s)", title, result.reason or "changed")
            report.results.append(RecordResult(title=title, outcome=result.outcome))

        return report

    async def _cleanup(self) -> Dict[str, Any]:
        try:
            return await self._sweep.run()
        except Exception as exc:
            logger.error("Error during cleanup: %s", exc)
            return {"deactivated": 0, "error": str(exc)}

    async def run(self) -> Dict[str, Any]:
        started = time.monotonic()
        logger.info("Starting opportunity sync job...")

        summary: Dict[str, Any] = {"success": True}
        try:
            await self._select_backend()
            batches = []
            for source in self._sources:
                batch, fetch_error = await self._fetch(source)
                batches.append((source.key, batch, fetch_error))

            for key, batch, fetch_error in batches:
                report = await self._reconcile_batch(key, batch, fetch_error)
                summary[key] = report.to_dict()
                logger.info(
                    "%s: %s new, %s updated, %s skipped",
                    key, report.new, report.updated, report.skipped,
                )
        except Exception as exc:
            logger.exception("Sync job failed")
            return {"success": False, "error": str(exc), "duration": _elapsed_ms(started)}

        summary["cleanup"] = await self._cleanup()
        summary["duration"] = _elapsed_ms(started)
        logger.info(
            "Sync job completed: %s deactivated, total time %sms",
            summary["cleanup"]["deactivated"], summary["duration"],
        )
        return summary


# ------------------------------------------------------------------------------
# Main entrypoint
# ------------------------------------------------------------------------------

def build_runner(store: Optional[OpportunityStore] = None) -> SyncRunner:
    from opportunity_hub.core.db import database_available, get_store
    from opportunity_hub.core.settings import settings

    store = store or get_store()
    fetcher = MLHFetcher(
        events_url=settings.MLH_EVENTS_URL,
        scrape_enabled=settings.MLH_SCRAPE_ENABLED,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    )
    reconciler = Reconciler(
        store,
        freshness_window=timedelta(minutes=settings.FRESHNESS_WINDOW_MINUTES),
    )
    return SyncRunner(store, [fetcher], backend_probe=database_available, reconciler=reconciler)


async def run_sync_once() -> Dict[str, Any]:
    """Run every registered source once and return the summary."""
    return await build_runner().run()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [sync] %(levelname)s: %(message)s",
    )
    result = asyncio.run(run_sync_once())
    logger.info("Sync result: %s", result)
    sys.exit(0 if result.get("success") else 1)
