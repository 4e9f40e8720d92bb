# zyro/db/__init__.py
"""
Database module.
"""
from typing import Optional

from zyro.core.config import settings
from zyro.core.exceptions import PersistenceError
from zyro.core.logging import log
from .store import Store

# Motor client instance
_client = None
_db = None
_connection_error: Optional[str] = None
_store: Optional[Store] = None


async def connect_db():
    """
    Connect to MongoDB and initialise beanie.

    If MongoDB is not available, stores the error for later retrieval
    rather than silently failing.
    """
    global _client, _db, _connection_error
    try:
        from motor.motor_asyncio import AsyncIOMotorClient
        from beanie import init_beanie
        from zyro.models import DOCUMENT_MODELS

        _client = AsyncIOMotorClient(settings.database.url, serverSelectionTimeoutMS=5000)
        _db = _client[settings.database.name]

        # Fail fast if MongoDB is not running
        await _client.admin.command("ping")
        log("DB", "✅ Connected to MongoDB")

        await init_beanie(database=_db, document_models=DOCUMENT_MODELS)
        log("DB", "✅ Beanie ODM initialized")
        _connection_error = None
    except Exception as e:
        log("DB", f"⚠️ MongoDB not available: {e}")
        log("DB", f"   ℹ️ Ensure MongoDB is running on {settings.database.url}")
        _client = None
        _db = None
        _connection_error = str(e)


async def disconnect_db():
    """Disconnect from MongoDB."""
    global _client
    if _client:
        _client.close()
        log("DB", "Disconnected from MongoDB")


def is_connected() -> bool:
    """Check if database is connected."""
    return _db is not None


def get_connection_error() -> Optional[str]:
    """Get connection error message if connection failed."""
    return _connection_error


def get_store() -> Store:
    """Get the store singleton (lazy initialization)."""
    global _store
    if _store is None:
        if not is_connected():
            raise PersistenceError("Database is not connected", {"error": _connection_error})
        from .beanie_store import BeanieStore
        _store = BeanieStore()
    return _store


def set_store(store: Optional[Store]) -> None:
    """Swap the store (tests, alternative backends)."""
    global _store
    _store = store


__all__ = [
    "Store",
    "connect_db",
    "disconnect_db",
    "is_connected",
    "get_connection_error",
    "get_store",
    "set_store",
]
