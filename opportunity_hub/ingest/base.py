# opportunity_hub/ingest/base.py

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class Location:
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    venue: Optional[str] = None


@dataclass
class EventDates:
    start_date: datetime
    end_date: datetime
    registration_deadline: Optional[datetime] = None


@dataclass
class SourceInfo:
    platform: str                        # e.g. "MLH"
    source_id: Optional[str] = None      # upstream identifier, primary dedup key
    last_updated: Optional[datetime] = None


@dataclass
class RawOpportunity:
    # ------------------------------------------------------------------
    # Identity / provenance
    # ------------------------------------------------------------------
    title: str
    external_url: str                    # secondary identity signal
    source: SourceInfo
    dates: EventDates

    # ------------------------------------------------------------------
    # Descriptive / classification
    # ------------------------------------------------------------------
    description: str = ""
    organizer: str = ""
    type: str = "hackathon"              # hackathon | internship | workshop
    mode: str = "offline"                # online | offline | hybrid
    location: Location = field(default_factory=Location)
    skills_required: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Extras carried through from the upstream listing
    # ------------------------------------------------------------------
    eligibility: Dict[str, Any] = field(default_factory=dict)
    registration: Dict[str, Any] = field(default_factory=dict)
    difficulty_level: str = "all"
    team_size: Dict[str, int] = field(default_factory=dict)
    themes: List[str] = field(default_factory=list)
    prizes: List[Dict[str, str]] = field(default_factory=list)
    is_active: bool = True

    def to_document(self) -> Dict[str, Any]:
        return asdict(self)


def to_document(item: Any) -> Optional[Dict[str, Any]]:
    """Accept either a RawOpportunity or a dict from a fetcher; None for anything else."""
    if isinstance(item, RawOpportunity):
        return item.to_document()
    if isinstance(item, dict):
        return dict(item)
    return None


def title_of(item: Any) -> str:
    if isinstance(item, RawOpportunity):
        return item.title
    if isinstance(item, dict):
        return str(item.get("title") or "")
    return ""
