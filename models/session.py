"""Schemas for persisted analysis sessions (one scoring run each)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.eligibility import PathwayAssessment
from models.profile import ApplicantProfile


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    STARRED = "starred"


class AnalysisSession(BaseModel):
    id: str
    user_id: Optional[str] = None
    profile_snapshot: ApplicantProfile
    target_countries: list[str]
    status: SessionStatus = SessionStatus.ACTIVE
    title: Optional[str] = None
    pathways_count: int
    top_pathway_code: Optional[str] = None
    top_pathway_score: Optional[float] = None
    overall_assessment: str
    top_recommendation: Optional[str] = None
    pathways: list[PathwayAssessment] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SessionCreateRequest(BaseModel):
    """Request body for POST /sessions: scores the profile and stores the run."""

    profile: ApplicantProfile


class SessionUpdateRequest(BaseModel):
    """Request body for PATCH /sessions/{id}.

    status is a plain string so out-of-enum values reach the store and are
    rejected there with the same error the store raises for any caller.
    """

    status: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)


class SessionSummary(BaseModel):
    session_id: str
    pathways_count: int
    top_pathway: Optional[str] = None
    top_score: Optional[float] = None


def top_pathway(assessments: list[PathwayAssessment]) -> Optional[PathwayAssessment]:
    """The rank-1 assessment, or None for an empty run.

    Used both when a session is written and when it is read back, so the
    stored top pair always matches the stored list.
    """
    for a in assessments:
        if a.recommendation_rank == 1:
            return a
    return None


def session_entity(doc: dict) -> dict:
    """Convert a MongoDB analysis_sessions document to the AnalysisSession shape."""
    return {
        "id": str(doc["_id"]),
        "user_id": str(doc["user_id"]) if doc.get("user_id") else None,
        "profile_snapshot": doc.get("profile_snapshot"),
        "target_countries": doc.get("target_countries") or [],
        "status": doc.get("status", SessionStatus.ACTIVE.value),
        "title": doc.get("title"),
        "pathways_count": doc.get("pathways_count", 0),
        "top_pathway_code": doc.get("top_pathway_code"),
        "top_pathway_score": doc.get("top_pathway_score"),
        "overall_assessment": doc.get("overall_assessment", ""),
        "top_recommendation": doc.get("top_recommendation"),
        "pathways": doc.get("pathways") or [],
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }
