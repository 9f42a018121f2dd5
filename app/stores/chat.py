"""Chat sessions and their messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from app.errors import NotFoundError, PersistenceError
from models.chat import chat_message_entity, chat_session_entity

TITLE_MAX_CHARS = 60


def _title_from(message: str) -> str:
    text = " ".join(message.split())
    return text if len(text) <= TITLE_MAX_CHARS else text[: TITLE_MAX_CHARS - 3] + "..."


class ChatStore:
    def __init__(self, db):
        self.sessions = db.chat_sessions
        self.messages = db.chat_messages

    async def get_or_create_active(
        self,
        user_id: str,
        analysis_session_id: Optional[str] = None,
        first_message: Optional[str] = None,
    ) -> dict:
        query = {"user_id": user_id, "is_active": True, "analysis_session_id": analysis_session_id}
        try:
            existing = await self.sessions.find_one(query, sort=[("updated_at", -1)])
            if existing:
                return existing
            now = datetime.now(timezone.utc)
            doc = {
                **query,
                "title": _title_from(first_message) if first_message else None,
                "created_at": now,
                "updated_at": now,
            }
            result = await self.sessions.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to open chat session: {e.__class__.__name__}")
        doc["_id"] = result.inserted_id
        return doc

    async def get_session(self, chat_session_id: str) -> Optional[dict]:
        if not ObjectId.is_valid(chat_session_id):
            return None
        try:
            return await self.sessions.find_one({"_id": ObjectId(chat_session_id)})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read chat session: {e.__class__.__name__}")

    async def append_exchange(self, session: dict, user_message: str, reply: str) -> None:
        now = datetime.now(timezone.utc)
        try:
            await self.messages.insert_many([
                {"session_id": session["_id"], "role": "user", "content": user_message, "created_at": now},
                {"session_id": session["_id"], "role": "assistant", "content": reply, "created_at": now},
            ])
            await self.sessions.update_one({"_id": session["_id"]}, {"$set": {"updated_at": now}})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to save chat messages: {e.__class__.__name__}")

    async def list_for_user(self, user_id: str, limit: int = 20) -> list[dict]:
        try:
            docs = await self.sessions.find({"user_id": user_id}).sort("updated_at", -1).limit(limit).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list chat sessions: {e.__class__.__name__}")
        return [chat_session_entity(d) for d in docs]

    async def get_with_messages(self, chat_session_id: str, limit: int = 50) -> dict:
        session = await self.get_session(chat_session_id)
        if not session:
            raise NotFoundError("Chat session not found")
        try:
            docs = await self.messages.find({"session_id": session["_id"]}).sort(
                [("created_at", 1), ("_id", 1)]
            ).limit(limit).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read chat messages: {e.__class__.__name__}")
        return {**chat_session_entity(session), "messages": [chat_message_entity(d) for d in docs]}
