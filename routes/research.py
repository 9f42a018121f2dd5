"""
Visa research API.

GET serves the cached research for a visa code while it is fresh (7 days)
and researches it live otherwise; POST forces a fresh research run.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.ai.research_cache import ResearchCache
from app.deps import get_catalog, get_research_cache
from app.errors import NotFoundError
from app.stores.catalog import VisaCatalog
from models.common import ApiResponse, ok
from models.research import ResearchRecord, ResearchResult

router = APIRouter(prefix="/research", tags=["research"])


async def _with_visa(record: ResearchRecord, catalog: VisaCatalog) -> dict:
    visa = await catalog.get_by_code(record.visa_code)
    if visa is None:
        raise NotFoundError(f"Visa type '{record.visa_code}' not found")
    return ResearchResult(visa=visa, research=record).model_dump(mode="json")


@router.get("/{visa_code}", response_model=ApiResponse[ResearchResult])
async def get_visa_research(
    visa_code: str,
    cache: ResearchCache = Depends(get_research_cache),
    catalog: VisaCatalog = Depends(get_catalog),
):
    """Cached-or-fresh research for one visa type. `research.from_cache` tells which."""
    record = await cache.get_research(visa_code)
    return ok(await _with_visa(record, catalog))


@router.post("/{visa_code}", response_model=ApiResponse[ResearchResult])
async def refresh_visa_research(
    visa_code: str,
    cache: ResearchCache = Depends(get_research_cache),
    catalog: VisaCatalog = Depends(get_catalog),
):
    """Discard any cached research for the visa type and research it again."""
    record = await cache.refresh_research(visa_code)
    return ok(await _with_visa(record, catalog))
