from __future__ import annotations

from datetime import datetime, timezone

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.errors import PersistenceError


async def get_or_create_user(db, email: str, name: str | None = None) -> str:
    """Return the id of the user with this email, creating the user if needed."""
    email = email.strip().lower()
    now = datetime.now(timezone.utc)
    try:
        user = await db.users.find_one_and_update(
            {"email": email},
            {"$setOnInsert": {"email": email, "name": name, "created_at": now, "updated_at": now}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise PersistenceError(f"Failed to resolve user: {e.__class__.__name__}")
    return str(user["_id"])
