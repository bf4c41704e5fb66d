# opportunity_hub/ingest/mlh.py
import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup

from opportunity_hub.core.clock import utcnow
from opportunity_hub.core.errors import FetchError
from opportunity_hub.ingest.base import EventDates, Location, RawOpportunity, SourceInfo
from opportunity_hub.ingest.sample_data import sample_opportunities
from opportunity_hub.ingest.utils import abs_url, clean_text, source_id_from_url

logger = logging.getLogger(__name__)

BASE_URL = "https://mlh.io"
EVENTS_URL = "https://mlh.io/seasons/2026/events"
PLATFORM = "MLH"
ORGANIZER = "Major League Hacking (MLH)"

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

DEFAULT_SKILLS = ["JavaScript", "Python", "React", "Node.js", "HTML", "CSS"]


# --------------------------
# Helpers
# --------------------------

def _first_text(el, selectors: List[str]) -> str:
    for selector in selectors:
        found = el.select_one(selector)
        if found is not None:
            text = clean_text(found.get_text(" "))
            if text:
                return text
    return ""


def _parse_day(text: str) -> Optional[datetime]:
    text = clean_text(text)
    if not text:
        return None
    text = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", text)
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _parse_dates(el) -> Optional[Tuple[datetime, datetime]]:
    start_meta = el.select_one("meta[itemprop=startDate]")
    end_meta = el.select_one("meta[itemprop=endDate]")
    start = _parse_day(start_meta.get("content", "")) if start_meta else None
    end = _parse_day(end_meta.get("content", "")) if end_meta else None

    if start is None:
        start = _parse_day(_first_text(el, [".event-date", ".date", "time"]))
    if start is None:
        return None
    if end is None or end < start:
        end = start + timedelta(days=2)  # MLH weekends; assume a two-day event
    return start, end


def _parse_location(el) -> Location:
    city = _first_text(el, ["[itemprop=addressLocality]", ".event-location .city"])
    state = _first_text(el, ["[itemprop=addressRegion]", ".event-location .state"])
    venue = _first_text(el, [".event-location", ".location", ".venue"])

    if not city and venue:
        parts = [p.strip() for p in venue.split(",") if p.strip()]
        city = parts[0] if parts else ""
        if len(parts) > 2:
            state = state or parts[1]

    return Location(
        city=city or "Various",
        state=state or None,
        country=None if city else "Global",
        venue=venue or "TBD",
    )


def _determine_mode(el, location: Location) -> str:
    text = (el.get_text(" ") + " " + " ".join(filter(None, [location.city, location.venue]))).lower()
    if "hybrid" in text:
        return "hybrid"
    if any(k in text for k in ("virtual", "online", "remote", "digital")):
        return "online"
    return "offline"


def parse_event(el, now: Optional[datetime] = None) -> Optional[RawOpportunity]:
    """Turn one event card into a RawOpportunity; None when the card is unusable."""
    now = now or utcnow()

    title = _first_text(el, [".event-name", "h3", "h2", "[class*=title]"])
    link = el.select_one("a[href]")
    url = abs_url(BASE_URL, link.get("href") if link else None)
    if not title or not url:
        return None

    dates = _parse_dates(el)
    if dates is None:
        return None
    start, end = dates

    location = _parse_location(el)
    skills_text = _first_text(el, [".skills", ".technologies", "[class*=tech]"])
    skills = [s.strip() for s in re.split(r"[,;]", skills_text) if s.strip()] or list(DEFAULT_SKILLS)

    return RawOpportunity(
        title=title,
        description=_first_text(el, [".event-description", ".description", "p"])
        or f"Join {title} - an exciting hackathon opportunity!",
        organizer=ORGANIZER,
        type="hackathon",
        mode=_determine_mode(el, location),
        location=location,
        dates=EventDates(start_date=start, end_date=end, registration_deadline=start - timedelta(days=7)),
        skills_required=skills,
        external_url=url,
        source=SourceInfo(platform=PLATFORM, source_id=source_id_from_url(url), last_updated=now),
        tags=["mlh", "hackathon", "student", "competition"],
        eligibility={"education_level": ["undergraduate", "graduate", "high_school"],
                     "other_requirements": "Must be a student"},
        registration={"is_open": start > now, "fee": {"amount": 0, "currency": "USD"}},
        team_size={"min": 1, "max": 4},
        is_active=end > now,
    )


def is_valid(opp: Optional[RawOpportunity]) -> bool:
    return bool(
        opp
        and opp.title
        and len(opp.title) > 3
        and opp.external_url
        and isinstance(opp.dates.start_date, datetime)
    )


def parse_events_page(html: str, now: Optional[datetime] = None) -> List[RawOpportunity]:
    soup = BeautifulSoup(html, "html.parser")
    cards = soup.select(".event-wrapper") or soup.select(".event")
    if not cards:
        logger.warning("MLH: no event cards found on page.")
        return []

    opps = [parse_event(card, now) for card in cards]
    valid = [o for o in opps if is_valid(o)]
    logger.info("MLH: parsed %s valid event(s) out of %s card(s).", len(valid), len(cards))
    return valid


# --------------------------
# Fetcher
# --------------------------

class MLHFetcher:
    key = "mlh"

    def __init__(
        self,
        events_url: str = EVENTS_URL,
        scrape_enabled: bool = False,
        timeout_seconds: int = 15,
    ):
        self.events_url = events_url
        self.scrape_enabled = scrape_enabled
        self.timeout_seconds = timeout_seconds

    async def _fetch_html(self) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(headers=HEADERS, timeout=timeout) as session:
            async with session.get(self.events_url) as resp:
                resp.raise_for_status()
                return await resp.text()

    async def fetch_opportunities(self) -> List[RawOpportunity]:
        """
        Live MLH events when scraping is enabled and the page parses; otherwise
        the bundled sample set. Network failures raise FetchError so the sync
        runner can log them before falling back.
        """
        if not self.scrape_enabled:
            logger.info("MLH scraping disabled, using sample MLH data.")
            return self.fallback_opportunities()

        logger.info("Fetching hackathons from %s", self.events_url)
        try:
            html = await self._fetch_html()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FetchError(self.key, str(exc) or exc.__class__.__name__) from exc

        opps = parse_events_page(html)
        if not opps:
            logger.warning("MLH page yielded no usable events, using sample MLH data.")
            return self.fallback_opportunities()
        return opps

    def fallback_opportunities(self) -> List[RawOpportunity]:
        return sample_opportunities()


# --------------------------
# Manual Test
# --------------------------

if __name__ == "__main__":
    async def _test():
        fetcher = MLHFetcher(scrape_enabled=True)
        for o in await fetcher.fetch_opportunities():
            print("----")
            print("Title:", o.title)
            print("Dates:", o.dates.start_date, "->", o.dates.end_date)
            print("URL:", o.external_url)

    asyncio.run(_test())
