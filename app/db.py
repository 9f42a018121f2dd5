import logging

from motor.motor_asyncio import AsyncIOMotorClient
from fastapi import Request
from pymongo import ASCENDING, DESCENDING

logger = logging.getLogger(__name__)

DB_NAME = "visapath"


def connect_to_mongo(app, mongo_url: str, db_name: str = DB_NAME):
    app.state.mongo_client = AsyncIOMotorClient(mongo_url, tz_aware=True)
    app.state.db_name = db_name


def close_mongo_connection(app):
    client = getattr(app.state, "mongo_client", None)
    if client:
        client.close()
        app.state.mongo_client = None


def get_db(request: Request):
    client = getattr(request.app.state, "mongo_client", None)
    if client is None:
        raise RuntimeError("MongoDB not connected")
    db_name = getattr(request.app.state, "db_name", DB_NAME)
    return client[db_name]


async def ensure_indexes(db):
    """Create the indexes the stores query by. Safe to run on every startup."""
    await db.visa_types.create_index("code", unique=True)
    await db.visa_types.create_index("country")
    # not unique: replacement is delete-then-insert, see app/ai/research_cache.py
    await db.visa_research.create_index("visa_code")
    await db.analysis_sessions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.analysis_sessions.create_index("status")
    await db.users.create_index("email", unique=True)
    await db.chat_sessions.create_index([("user_id", ASCENDING), ("updated_at", DESCENDING)])
    await db.chat_messages.create_index([("session_id", ASCENDING), ("created_at", ASCENDING)])
    await db.documents.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.profiles.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    logger.info("MongoDB indexes ensured")
