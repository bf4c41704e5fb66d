# opportunity_hub/core/scheduler.py
import asyncio
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from opportunity_hub.core.settings import settings
from opportunity_hub.ingest.runner import run_sync_once

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------------------
# Job: sync all sources and sweep expired opportunities
# --------------------------------------------------------------------------------------

async def job_sync():
    """
    Run one full synchronization.
    This calls the same logic as python -m opportunity_hub.ingest.runner.
    """
    logger.info("[job_sync] starting")
    result = await run_sync_once()
    if result.get("success"):
        logger.info("[job_sync] done. duration=%sms", result.get("duration"))
    else:
        logger.error("[job_sync] failed: %s", result.get("error"))
    return result


# --------------------------------------------------------------------------------------
# APScheduler configuration
# --------------------------------------------------------------------------------------

scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)


def start_scheduler(run_now: bool = False):
    """
    Register the recurring sync and start the scheduler.
    - Sync every SYNC_INTERVAL_HOURS hours on the hour
    - At most one sync at a time (overlapping fires are dropped, missed ones coalesced)
    """
    hours = max(1, int(settings.SYNC_INTERVAL_HOURS))
    job_kwargs = {}
    if run_now:
        # fire once immediately, then follow the cron schedule
        job_kwargs["next_run_time"] = datetime.now(timezone.utc)

    scheduler.add_job(
        job_sync,
        CronTrigger(hour=f"*/{hours}", minute=0),
        name="sync_opportunities",
        id="sync_opportunities",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
        **job_kwargs,
    )

    scheduler.start()
    logger.info("[scheduler] started (every %sh).", hours)


# --------------------------------------------------------------------------------------
# Standalone runner mode
# --------------------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [scheduler] %(levelname)s: %(message)s",
    )

    async def runner():
        start_scheduler(run_now=True)
        logger.info("[main] scheduler running. Ctrl+C to stop.")
        # keep the loop alive forever
        while True:
            await asyncio.sleep(3600)

    asyncio.run(runner())
