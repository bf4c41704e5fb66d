import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from opportunity_hub.core.settings import settings
from opportunity_hub.storage.facade import OpportunityStore
from opportunity_hub.storage.json_collection import JsonCollection
from opportunity_hub.storage.mongo_collection import MongoCollection

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_store: Optional[OpportunityStore] = None


def get_client() -> Optional[AsyncIOMotorClient]:
    """Lazily build the Motor client; None when no MONGO_URL is configured."""
    global _client
    if _client is None and settings.MONGO_URL:
        _client = AsyncIOMotorClient(
            settings.MONGO_URL,
            serverSelectionTimeoutMS=settings.MONGO_CONNECT_TIMEOUT_MS,
            tz_aware=True,
        )
    return _client


async def database_available(client: Optional[AsyncIOMotorClient] = None) -> bool:
    """Ping the server. Any driver error means 'use the JSON file'."""
    client = client if client is not None else get_client()
    if client is None:
        return False
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as exc:
        logger.warning("MongoDB unreachable, falling back to JSON storage: %s", exc)
        return False


def build_store(client: Optional[AsyncIOMotorClient] = None) -> OpportunityStore:
    client = client if client is not None else get_client()
    db_collection = None
    if client is not None:
        db_collection = MongoCollection(client[settings.MONGO_DB_NAME][settings.MONGO_COLLECTION])
    return OpportunityStore(JsonCollection(settings.opportunities_path), db_collection)


def get_store() -> OpportunityStore:
    """Process-wide store (FastAPI dependency and scheduler jobs share it)."""
    global _store
    if _store is None:
        _store = build_store()
    return _store


async def refresh_backend(store: Optional[OpportunityStore] = None) -> bool:
    """Re-probe the database and point the store at whichever backend is up."""
    store = store or get_store()
    available = store.has_database and await database_available()
    store.set_backend_available(available)
    return available
