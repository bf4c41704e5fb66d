# opportunity_hub/ingest/utils.py
import re
from typing import Optional


def clean_text(s: Optional[str]) -> str:
    if not s:
        return ""
    return re.sub(r"\s+", " ", str(s).replace("\xa0", " ")).strip()


def abs_url(base_url: str, href: Optional[str]) -> Optional[str]:
    """
    Resolve a scraped href against the site root.
    Returns None for links that are not navigable (javascript:, #, empty).
    """
    if not href:
        return None

    u = href.strip()
    if not u or u == "#" or u.lower().startswith("javascript:"):
        return None
    if u.startswith("http://") or u.startswith("https://"):
        return u
    if u.startswith("/"):
        return base_url.rstrip("/") + u
    return base_url.rstrip("/") + "/" + u


def source_id_from_url(url: str) -> str:
    """Last path segment of the event URL, or a squashed form of the whole URL."""
    tail = url.rstrip("/").split("/")[-1]
    if tail:
        return tail
    return re.sub(r"[^a-zA-Z0-9]", "", url)[:20]
