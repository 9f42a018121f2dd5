"""Intake profiles saved by users, one document per submission."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from app.errors import PersistenceError
from app.stores.sessions import utcnow_ms
from models.profile import ApplicantProfile, StoredProfile, profile_entity


class ProfileStore:
    def __init__(self, db, clock: Callable[[], datetime] = utcnow_ms):
        self.collection = db.profiles
        self.clock = clock

    @staticmethod
    def _to_model(doc: dict) -> StoredProfile:
        try:
            return StoredProfile.model_validate(profile_entity(doc))
        except (PydanticValidationError, KeyError) as e:
            raise PersistenceError(f"Malformed profile {doc.get('_id')}: {e}")

    async def create(self, user_id: str, profile: ApplicantProfile) -> StoredProfile:
        now = self.clock()
        doc = {
            "user_id": user_id,
            **profile.model_dump(mode="json", exclude={"email", "name"}),
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to store profile: {e.__class__.__name__}")
        doc["_id"] = result.inserted_id
        return self._to_model(doc)

    async def list_for_user(self, user_id: str) -> list[StoredProfile]:
        try:
            docs = await self.collection.find({"user_id": user_id}).sort(
                [("created_at", -1), ("_id", -1)]
            ).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list profiles: {e.__class__.__name__}")
        return [self._to_model(d) for d in docs]
