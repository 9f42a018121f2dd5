"""
Uploaded document metadata.

Files live in external storage; this collection keeps what the API needs to
list them and the AI extraction results written back by PATCH.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.errors import NotFoundError, PersistenceError, ValidationError
from app.stores.sessions import utcnow_ms
from models.document import DocumentCreate, DocumentOut, DocumentStatus, DocumentUpdate, document_entity

logger = logging.getLogger(__name__)


class DocumentStore:
    def __init__(self, db, clock: Callable[[], datetime] = utcnow_ms):
        self.collection = db.documents
        self.clock = clock

    @staticmethod
    def _to_model(doc: dict) -> DocumentOut:
        try:
            return DocumentOut.model_validate(document_entity(doc))
        except (PydanticValidationError, KeyError) as e:
            raise PersistenceError(f"Malformed document record {doc.get('_id')}: {e}")

    async def create(self, user_id: str, data: DocumentCreate) -> DocumentOut:
        now = self.clock()
        doc = {
            "user_id": user_id,
            "type": data.type.value,
            "file_name": data.file_name,
            "file_url": str(data.file_url),
            "file_size": data.file_size,
            "mime_type": data.mime_type,
            "extracted_data": None,
            "ai_analysis": None,
            "status": DocumentStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to store document: {e.__class__.__name__}")
        doc["_id"] = result.inserted_id
        logger.info("Stored document %s (%s) for user %s", result.inserted_id, data.type.value, user_id)
        return self._to_model(doc)

    async def list_for_user(self, user_id: str) -> list[DocumentOut]:
        try:
            docs = await self.collection.find({"user_id": user_id}).sort(
                [("created_at", -1), ("_id", -1)]
            ).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list documents: {e.__class__.__name__}")
        return [self._to_model(d) for d in docs]

    async def get(self, document_id: str) -> DocumentOut:
        if not ObjectId.is_valid(document_id):
            raise NotFoundError("Document not found")
        try:
            doc = await self.collection.find_one({"_id": ObjectId(document_id)})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read document: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Document not found")
        return self._to_model(doc)

    async def update(self, document_id: str, changes: DocumentUpdate) -> DocumentOut:
        updates = changes.model_dump(mode="json", exclude_none=True)
        if not updates:
            raise ValidationError("No fields to update")
        if not ObjectId.is_valid(document_id):
            raise NotFoundError("Document not found")

        updates["updated_at"] = self.clock()
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": ObjectId(document_id)},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update document: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Document not found")
        return self._to_model(doc)

    async def delete(self, document_id: str) -> bool:
        if not ObjectId.is_valid(document_id):
            return False
        try:
            result = await self.collection.delete_one({"_id": ObjectId(document_id)})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to delete document: {e.__class__.__name__}")
        return result.deleted_count > 0

    async def owner_of(self, document_id: str) -> Optional[str]:
        """Owner id of a stored document. NotFoundError when there is none."""
        if not ObjectId.is_valid(document_id):
            raise NotFoundError("Document not found")
        try:
            doc = await self.collection.find_one({"_id": ObjectId(document_id)}, {"user_id": 1})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read document: {e.__class__.__name__}")
        if not doc:
            raise NotFoundError("Document not found")
        return doc.get("user_id")
