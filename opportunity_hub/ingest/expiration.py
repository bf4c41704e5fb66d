# opportunity_hub/ingest/expiration.py
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from opportunity_hub.core.clock import utcnow
from opportunity_hub.storage.facade import OpportunityStore

logger = logging.getLogger(__name__)


class ExpirationSweep:
    """Deactivate every active opportunity whose end date has passed."""

    def __init__(self, store: OpportunityStore, *, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def run(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or self._clock()
        # already-inactive records never match, so a second pass is a no-op
        deactivated = await self._store.update_many(
            {"is_active": True, "dates.end_date": {"$lt": now}},
            {"is_active": False, "source.last_updated": now},
        )
        logger.info("Deactivated %s expired opportunities", deactivated)
        return {"deactivated": deactivated}
