"""
Research cache for per-visa deep research.

- get_research returns the live record for a visa code (expires_at > now)
  tagged from_cache=True, or researches the visa with the oracle, stores the
  result with expires_at = now + TTL and returns it tagged from_cache=False.
- refresh_research drops whatever is stored for the code and takes the miss
  path unconditionally.

Replacement is delete-then-insert without a transaction. Two concurrent
misses for one code may both call the oracle; the later insert deletes the
earlier one's row first, so at most one record per code survives (last write
wins). A crash between delete and insert leaves no record, which just means
the next call is a miss.

Unknown visa codes raise NotFoundError before the cache is touched. Oracle
failures propagate; a record already deleted by refresh_research is gone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from app.ai.prompts import RESEARCH_SYSTEM_PROMPT
from app.errors import NotFoundError, PersistenceError
from app.stores.catalog import VisaCatalog, normalize_visa_code
from app.utils.countries import country_name
from models.research import ResearchRecord, VisaResearchOutput, research_entity
from models.visa import VisaType

logger = logging.getLogger(__name__)

CACHE_DURATION = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_store_precision(dt: datetime) -> datetime:
    """UTC, millisecond precision: what a Mongo round trip gives back."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def build_research_prompt(visa: VisaType, today: datetime) -> str:
    country = country_name(visa.country)
    return f"""You are a professional immigration consultant researching the "{visa.name}" visa for {country}.

Research and provide CURRENT, VERIFIED information about this visa:

Visa Code: {visa.code}
Visa Name: {visa.name}
Country: {country}
Category: {visa.category}
Description: {visa.description or "Work/immigration visa"}

Please research:
1. Official requirements - what documents and qualifications are needed
2. Current application fees (in local currency)
3. Processing times - standard and expedited if available
4. Eligibility criteria - salary, education, experience, language requirements
5. Step-by-step application process
6. Any recent policy changes in the last 6 months
7. Official government sources (provide real URLs)

IMPORTANT:
- Only provide verified information from official sources
- Include real government website URLs in sources
- Be accurate about fees and timelines
- If uncertain about any data, mark confidence score lower
- Current date is {today.date().isoformat()}"""


class ResearchCache:
    def __init__(
        self,
        db,
        oracle,
        catalog: VisaCatalog | None = None,
        ttl: timedelta = CACHE_DURATION,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.collection = db.visa_research
        self.catalog = catalog or VisaCatalog(db)
        self.oracle = oracle
        self.ttl = ttl
        self.clock = clock

    async def _resolve(self, visa_code: str) -> VisaType:
        visa = await self.catalog.get_by_code(visa_code)
        if visa is None:
            raise NotFoundError(f"Visa type '{visa_code}' not found")
        return visa

    async def _live_record(self, code: str, now: datetime) -> ResearchRecord | None:
        try:
            docs = await self.collection.find({"visa_code": code}).sort("researched_at", -1).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read research cache: {e.__class__.__name__}")
        for doc in docs:
            try:
                record = ResearchRecord.model_validate(research_entity(doc))
            except (PydanticValidationError, KeyError) as e:
                logger.warning("Ignoring malformed research record %s: %s", doc.get("_id"), e)
                continue
            expires_at = to_store_precision(record.expires_at)
            if expires_at > now:
                return record.model_copy(update={
                    "researched_at": to_store_precision(record.researched_at),
                    "expires_at": expires_at,
                    "from_cache": True,
                })
        return None

    async def _delete_all(self, code: str) -> int:
        try:
            result = await self.collection.delete_many({"visa_code": code})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to clear research cache: {e.__class__.__name__}")
        return result.deleted_count

    async def _fetch_and_store(self, visa: VisaType) -> ResearchRecord:
        researched_at = to_store_precision(self.clock())
        logger.info("Performing live research for %s", visa.code)
        output = await self.oracle.generate_structured(
            build_research_prompt(visa, researched_at),
            VisaResearchOutput,
            system=RESEARCH_SYSTEM_PROMPT,
        )
        expires_at = researched_at + self.ttl

        sections = output.model_dump(mode="json")
        doc = {
            "visa_type_id": visa.id,
            "visa_code": visa.code,
            "researched_at": researched_at,
            "expires_at": expires_at,
            "official_requirements": sections["officialRequirements"],
            "current_fees": sections["currentFees"],
            "processing_times": sections["processingTimes"],
            "eligibility_criteria": sections["eligibilityCriteria"],
            "application_steps": sections["applicationSteps"],
            "recent_changes": sections["recentChanges"],
            "sources": sections["sources"],
            "ai_summary": sections["aiSummary"],
            "confidence_score": sections["confidenceScore"],
        }

        # Not transactional; see module docstring.
        removed = await self._delete_all(visa.code)
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            raise PersistenceError(f"Failed to store research: {e.__class__.__name__}")
        logger.info("Stored research for %s (replaced %d record(s)), expires %s", visa.code, removed, expires_at.isoformat())

        doc["_id"] = result.inserted_id
        return ResearchRecord.model_validate({**research_entity(doc), "from_cache": False})

    async def get_research(self, visa_code: str) -> ResearchRecord:
        visa = await self._resolve(visa_code)
        now = to_store_precision(self.clock())
        cached = await self._live_record(visa.code, now)
        if cached is not None:
            logger.info("Research cache hit for %s", visa.code)
            return cached
        logger.info("Research cache miss for %s", visa.code)
        return await self._fetch_and_store(visa)

    async def refresh_research(self, visa_code: str) -> ResearchRecord:
        visa = await self._resolve(visa_code)
        removed = await self._delete_all(visa.code)
        logger.info("Forced research refresh for %s (cleared %d record(s))", visa.code, removed)
        return await self._fetch_and_store(visa)
