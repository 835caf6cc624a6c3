# database.py

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.server_api import ServerApi

from config import settings

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def connect() -> Database:
    """Create the client on first use. A missing connection string is fatal."""
    global _client, _db
    if _db is None:
        if not settings.MONGODB_URI:
            raise RuntimeError("MONGODB_URI is not defined in environment variables")
        _client = MongoClient(settings.MONGODB_URI, server_api=ServerApi("1"))
        _db = _client[settings.MONGODB_DB]
        logger.info("MongoDB client created for database '%s'", settings.MONGODB_DB)
    return _db


def close():
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def get_db() -> Database:
    # FastAPI dependency; tests override it with a mongomock database
    return connect()


def ping(db: Database) -> bool:
    db.command("ping")
    return True


def ensure_indexes(db: Database):
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.carts.create_index([("userId", ASCENDING)], unique=True)
    db.favorites.create_index([("user", ASCENDING), ("productId", ASCENDING)], unique=True)
    db.orders.create_index([("orderNumber", ASCENDING)], unique=True)
    db.orders.create_index([("user", ASCENDING), ("createdAt", DESCENDING)])
    db.products.create_index([("createdAt", DESCENDING)])
    db.products.create_index([("category", ASCENDING)])


# --- Helpers shared by the routers ---

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for a 24-char hex string, None for anything else."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or len(value) != 24 or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def serialize_doc(doc: Any) -> Any:
    """Make a Mongo document JSON friendly. Password hashes never leave the server."""
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    if isinstance(doc, list):
        return [serialize_doc(v) for v in doc]
    if isinstance(doc, dict):
        return {k: serialize_doc(v) for k, v in doc.items() if k != "password"}
    return doc
