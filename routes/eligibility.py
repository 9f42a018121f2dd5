"""
Eligibility scoring API.

POST /api/v1/eligibility scores an applicant profile against the visa types
of their target countries and, when `save` is set, stores the run as an
analysis session. The session is written only after scoring succeeded, so a
failed or abandoned oracle call never leaves a session behind.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends

from app.ai.eligibility_scorer import EligibilityScorer
from app.auth.deps import get_optional_user
from app.db import get_db
from app.deps import get_catalog, get_scorer, get_session_store
from app.errors import NotFoundError
from app.stores.catalog import VisaCatalog
from app.stores.sessions import AnalysisSessionStore
from app.stores.users import get_or_create_user
from models.common import ApiResponse, ok
from models.eligibility import EligibilityRequest, EligibilityResult, PathwayOut, ScoringResult
from models.profile import ApplicantProfile
from models.visa import VisaType, VisaTypeSummary

router = APIRouter(tags=["eligibility"])


async def score_profile(
    profile: ApplicantProfile,
    catalog: VisaCatalog,
    scorer: EligibilityScorer,
) -> tuple[ScoringResult, list[VisaType]]:
    candidates = await catalog.candidates_for(profile.target_countries)
    if not candidates:
        raise NotFoundError("No visa types available to analyze")
    result = await scorer.score(profile, candidates)
    return result, candidates


async def resolve_owner(db, user: Optional[dict], profile: ApplicantProfile) -> Optional[str]:
    """Owner of a new session: the token subject, else the user behind the profile email."""
    if user:
        return user["id"]
    if profile.email:
        return await get_or_create_user(db, profile.email)
    return None


def attach_visa_details(result: ScoringResult, candidates: list[VisaType]) -> list[PathwayOut]:
    by_code = {v.code.lower(): v for v in candidates}
    out = []
    for a in result.assessments:
        visa = by_code.get(a.visa_type_code)
        out.append(PathwayOut(
            **a.model_dump(),
            visa_type=VisaTypeSummary.from_visa_type(visa) if visa else None,
        ))
    return out


@router.post("/eligibility", response_model=ApiResponse[EligibilityResult])
async def analyze_eligibility(
    body: EligibilityRequest,
    db=Depends(get_db),
    catalog: VisaCatalog = Depends(get_catalog),
    scorer: EligibilityScorer = Depends(get_scorer),
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    """
    Score the profile and return up to five ranked visa pathways.

    Ranks follow descending eligibility score. Every pathway references a
    visa type from the analyzed candidate set.
    """
    result, candidates = await score_profile(body.profile, catalog, scorer)

    session_id = None
    if body.save:
        owner = await resolve_owner(db, user, body.profile)
        session_id = await sessions.create(
            body.profile,
            result.assessments,
            result.overall_assessment,
            result.top_recommendation_code,
            user_id=owner,
        )

    data = EligibilityResult(
        pathways=attach_visa_details(result, candidates),
        overall_assessment=result.overall_assessment,
        top_recommendation=result.top_recommendation_code,
        session_id=session_id,
        metadata={
            "visa_types_analyzed": result.candidates_analyzed,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
    return ok(data.model_dump(mode="json"))
