from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC now; every stored timestamp goes through here."""
    return datetime.now(timezone.utc)
