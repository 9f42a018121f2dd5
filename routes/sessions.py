from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.ai.eligibility_scorer import EligibilityScorer
from app.auth.deps import ensure_owner, get_optional_user
from app.db import get_db
from app.deps import get_catalog, get_scorer, get_session_store
from app.errors import NotFoundError
from app.stores.catalog import VisaCatalog
from app.stores.sessions import DEFAULT_LIST_LIMIT, AnalysisSessionStore, parse_status
from models.common import ok
from models.session import SessionCreateRequest, SessionSummary, SessionUpdateRequest, top_pathway
from routes.eligibility import resolve_owner, score_profile

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(
    body: SessionCreateRequest,
    db=Depends(get_db),
    catalog: VisaCatalog = Depends(get_catalog),
    scorer: EligibilityScorer = Depends(get_scorer),
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    """Score a profile and store the run; returns a summary of the new session."""
    result, _ = await score_profile(body.profile, catalog, scorer)
    owner = await resolve_owner(db, user, body.profile)
    session_id = await sessions.create(
        body.profile,
        result.assessments,
        result.overall_assessment,
        result.top_recommendation_code,
        user_id=owner,
    )
    top = top_pathway(result.assessments)
    summary = SessionSummary(
        session_id=session_id,
        pathways_count=len(result.assessments),
        top_pathway=top.visa_type_code if top else None,
        top_score=top.eligibility_score if top else None,
    )
    return ok(summary.model_dump())


@router.get("")
async def list_sessions(
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=100),
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    # a signed-in caller only sees their own sessions
    owner = user["id"] if user else user_id
    items = await sessions.list_sessions(user_id=owner, status=status, limit=limit)
    return ok([s.model_dump(mode="json") for s in items], count=len(items))


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    session = await sessions.get(session_id)
    ensure_owner(user, session.user_id, "Session not found")
    return ok(session.model_dump(mode="json"))


@router.patch("/{session_id}")
async def update_session(
    session_id: str,
    body: SessionUpdateRequest,
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    if body.status is not None:
        parse_status(body.status)
    if user is not None:
        ensure_owner(user, await sessions.owner_of(session_id), "Session not found")
    session = await sessions.update(session_id, status=body.status, title=body.title)
    return ok(session.model_dump(mode="json"))


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    sessions: AnalysisSessionStore = Depends(get_session_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    if user is not None:
        ensure_owner(user, await sessions.owner_of(session_id), "Session not found")
    if not await sessions.delete(session_id):
        raise NotFoundError("Session not found")
    return ok({"deleted": session_id})
