from functools import lru_cache
import os

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConfigurationError

from sheetlens.store import UploadStore


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
        return parsed if parsed > 0 else default
    except ValueError:
        return default


@lru_cache
def _mongo_uri() -> str:
    return os.getenv("MONGODB_URI", "mongodb://localhost:27017/sheetlens")


@lru_cache
def get_mongo_client() -> AsyncIOMotorClient:
    # Singleton – Motor manages its own connection pool internally.
    return AsyncIOMotorClient(
        _mongo_uri(),
        serverSelectionTimeoutMS=_env_int("MONGO_TIMEOUT_MS", 5000),
        tz_aware=True,
    )


def get_db():
    client = get_mongo_client()
    try:
        # Preferred: database name in URI path (e.g. ...mongodb.net/sheetlens)
        return client.get_default_database()
    except ConfigurationError:
        # Fallback for URIs without db path.
        return client.get_database(os.getenv("MONGO_DB", "sheetlens"))


def get_upload_store() -> UploadStore:
    return UploadStore(get_db().uploads)
