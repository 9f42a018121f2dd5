"""Read-only access to the visa_types collection."""

from __future__ import annotations

import re

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from app.errors import PersistenceError
from models.visa import VisaType, visa_type_entity


def normalize_visa_code(code: str) -> str:
    return (code or "").strip().lower()


class VisaCatalog:
    def __init__(self, db):
        self.collection = db.visa_types

    async def _find(self, query: dict) -> list[VisaType]:
        try:
            docs = await self.collection.find({**query, "is_active": {"$ne": False}}).sort(
                [("country", 1), ("code", 1)]
            ).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read visa catalog: {e.__class__.__name__}")
        return [self._to_model(d) for d in docs]

    @staticmethod
    def _to_model(doc: dict) -> VisaType:
        try:
            return VisaType.model_validate(visa_type_entity(doc))
        except (PydanticValidationError, KeyError) as e:
            raise PersistenceError(f"Malformed visa type document {doc.get('_id')}: {e}")

    async def get_all(self) -> list[VisaType]:
        return await self._find({})

    async def get_by_country(self, country: str) -> list[VisaType]:
        return await self._find({"country": country.strip().upper()})

    async def get_by_countries(self, countries: list[str]) -> list[VisaType]:
        codes = [c.strip().upper() for c in countries if c and c.strip()]
        if not codes:
            return []
        return await self._find({"country": {"$in": codes}})

    async def get_by_category(self, category: str) -> list[VisaType]:
        return await self._find({"category": category.strip().lower()})

    async def get_by_codes(self, codes: list[str]) -> list[VisaType]:
        return await self._find({"code": {"$in": [normalize_visa_code(c) for c in codes]}})

    async def get_by_code(self, code: str) -> VisaType | None:
        found = await self._find({"code": normalize_visa_code(code)})
        return found[0] if found else None

    async def get_by_id(self, visa_id: str) -> VisaType | None:
        if not ObjectId.is_valid(visa_id):
            return None
        found = await self._find({"_id": ObjectId(visa_id)})
        return found[0] if found else None

    async def candidates_for(self, target_countries: list[str]) -> list[VisaType]:
        """Candidate set for a scoring run.

        Falls back to a case-insensitive country match over the whole
        catalog, and then to the whole catalog, when the direct lookup
        finds nothing.
        """
        visas = await self.get_by_countries(target_countries)
        if visas:
            return visas
        everything = await self.get_all()
        wanted = {re.sub(r"\s+", "", c).lower() for c in target_countries}
        matching = [v for v in everything if v.country.lower() in wanted]
        return matching or everything
