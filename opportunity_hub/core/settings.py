from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import os


def _coerce_mongo_url(url: str) -> str:
    """Accept bare host[:port] values and normalize them to a mongodb:// URL."""
    if not url:
        return url
    url = url.strip()
    if url.startswith("mongodb://") or url.startswith("mongodb+srv://"):
        return url
    return "mongodb://" + url


class Settings(BaseSettings):
    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------
    ENV: str = "local"

    # ------------------------------------------------------------------
    # Document database (optional; JSON file fallback when unreachable)
    # ------------------------------------------------------------------
    MONGO_URL: Optional[str] = None  # resolved at runtime if missing
    MONGO_DB_NAME: str = "opportunity_hub"
    MONGO_COLLECTION: str = "opportunities"
    MONGO_CONNECT_TIMEOUT_MS: int = 2000

    # ------------------------------------------------------------------
    # File-backed collection
    # ------------------------------------------------------------------
    DATA_DIR: str = "data"
    OPPORTUNITIES_FILE: str = "opportunities.json"

    # ------------------------------------------------------------------
    # Scheduler / sync config
    # ------------------------------------------------------------------
    SYNC_INTERVAL_HOURS: int = 6
    TIMEZONE: str = "UTC"
    START_SCHEDULER_WEB: bool = False      # start APScheduler in web process (default off)
    FRESHNESS_WINDOW_MINUTES: int = 60

    # ------------------------------------------------------------------
    # Upstream sources
    # ------------------------------------------------------------------
    MLH_EVENTS_URL: str = "https://mlh.io/seasons/2026/events"
    MLH_SCRAPE_ENABLED: bool = False       # serve the bundled sample set unless enabled
    HTTP_TIMEOUT_SECONDS: int = 15

    # ------------------------------------------------------------------
    # Model configuration
    # ------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # ignore any unrecognized vars instead of erroring
    )

    @property
    def opportunities_path(self) -> str:
        return os.path.join(self.DATA_DIR, self.OPPORTUNITIES_FILE)


# create global settings instance and normalize the Mongo URL
settings = Settings()

# Fallback: allow Heroku-style MONGODB_URI
if not settings.MONGO_URL:
    fallback = os.getenv("MONGODB_URI", "")
    if fallback:
        settings.MONGO_URL = _coerce_mongo_url(fallback)

if settings.MONGO_URL:
    settings.MONGO_URL = _coerce_mongo_url(settings.MONGO_URL)
