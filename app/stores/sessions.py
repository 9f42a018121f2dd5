"""
Analysis session persistence.

One document per scoring run. After creation a session only changes through
status/title updates, and it is removed with a hard delete. Documents are
validated into AnalysisSession on every read, so malformed rows surface as
PersistenceError instead of leaking half-shaped dicts to callers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.errors import NotFoundError, PersistenceError, ValidationError
from models.eligibility import PathwayAssessment
from models.profile import ApplicantProfile
from models.session import AnalysisSession, SessionStatus, session_entity, top_pathway

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20


def utcnow_ms() -> datetime:
    now = datetime.now(timezone.utc)
    # Mongo stores milliseconds
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_status(status: str) -> SessionStatus:
    try:
        return SessionStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in SessionStatus)
        raise ValidationError(
            f"Invalid status '{status}'",
            details=[{"loc": ["status"], "msg": f"must be one of: {allowed}", "type": "enum"}],
        )


class AnalysisSessionStore:
    def __init__(self, db, clock: Callable[[], datetime] = utcnow_ms):
        self.collection = db.analysis_sessions
        self.clock = clock

    def _to_model(self, doc: dict) -> AnalysisSession:
        try:
            session = AnalysisSession.model_validate(session_entity(doc))
        except (PydanticValidationError, KeyError) as e:
            raise PersistenceError(f"Malformed analysis session {doc.get('_id')}: {e}")

        top = top_pathway(session.pathways)
        derived = (top.visa_type_code, top.eligibility_score) if top else (None, None)
        if derived != (session.top_pathway_code, session.top_pathway_score):
            logger.warning(
                "Session %s stored top pathway %s does not match its pathway list; using %s",
                session.id, (session.top_pathway_code, session.top_pathway_score), derived,
            )
            session = session.model_copy(update={"top_pathway_code": derived[0], "top_pathway_score": derived[1]})
        return session

    async def create(
        self,
        profile: ApplicantProfile,
        assessments: list[PathwayAssessment],
        overall_assessment: str,
        top_recommendation: Optional[str],
        user_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> str:
        top = top_pathway(assessments)
        now = self.clock()
        doc = {
            "user_id": user_id,
            "profile_snapshot": profile.model_dump(mode="json"),
            "target_countries": list(profile.target_countries),
            "status": SessionStatus.ACTIVE.value,
            "title": title,
            "pathways_count": len(assessments),
            "top_pathway_code": top.visa_type_code if top else None,
            "top_pathway_score": top.eligibility_score if top else None,
            "overall_assessment": overall_assessment,
            "top_recommendation": top_recommendation,
            "pathways": [a.model_dump(mode="json") for a in assessments],
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to store analysis session: {e.__class__.__name__}")
        session_id = str(result.inserted_id)
        logger.info("Created analysis session %s with %d pathways", session_id, len(assessments))
        return session_id

    async def get(self, session_id: str) -> AnalysisSession:
        if not ObjectId.is_valid(session_id):
            raise NotFoundError("Session not found")
        try:
            doc = await self.collection.find_one({"_id": ObjectId(session_id)})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read analysis session: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Session not found")
        return self._to_model(doc)

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AnalysisSession]:
        query: dict = {}
        if user_id:
            query["user_id"] = user_id
        if status and status != "all":
            query["status"] = parse_status(status).value
        try:
            docs = await self.collection.find(query).sort(
                [("created_at", -1), ("_id", -1)]
            ).limit(max(1, limit)).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list analysis sessions: {e.__class__.__name__}")
        return [self._to_model(d) for d in docs]

    async def update(
        self,
        session_id: str,
        status: Optional[str] = None,
        title: Optional[str] = None,
    ) -> AnalysisSession:
        updates: dict = {}
        if status is not None:
            updates["status"] = parse_status(status).value
        if title is not None:
            updates["title"] = title.strip() or None
        if not updates:
            raise ValidationError("No fields to update")
        if not ObjectId.is_valid(session_id):
            raise NotFoundError("Session not found")

        updates["updated_at"] = self.clock()
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": ObjectId(session_id)},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update analysis session: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Session not found")
        return self._to_model(doc)

    async def update_status(self, session_id: str, status: str) -> AnalysisSession:
        return await self.update(session_id, status=status)

    async def delete(self, session_id: str) -> bool:
        """Hard delete. Returns whether a document was removed; missing ids are not an error."""
        if not ObjectId.is_valid(session_id):
            return False
        try:
            result = await self.collection.delete_one({"_id": ObjectId(session_id)})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to delete analysis session: {e.__class__.__name__}")
        return result.deleted_count > 0

    async def latest_for_user(self, user_id: str) -> Optional[AnalysisSession]:
        sessions = await self.list_sessions(user_id=user_id, limit=1)
        return sessions[0] if sessions else None

    async def owner_of(self, session_id: str) -> Optional[str]:
        if not ObjectId.is_valid(session_id):
            raise NotFoundError("Session not found")
        try:
            doc = await self.collection.find_one({"_id": ObjectId(session_id)}, {"user_id": 1})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read analysis session: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Session not found")
        return doc.get("user_id")
