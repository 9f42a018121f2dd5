"""Schemas for cached deep research on a single visa type."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from models.visa import VisaType


class ResearchRequirement(BaseModel):
    name: str
    description: str
    priority: Literal["critical", "important", "helpful"]
    documentNeeded: bool


class AdditionalFee(BaseModel):
    name: str
    amount: float
    optional: bool


class CurrentFees(BaseModel):
    applicationFee: float
    currency: str
    additionalFees: list[AdditionalFee] = Field(default_factory=list)
    totalEstimate: float
    lastUpdated: str


class StandardProcessing(BaseModel):
    minDays: float
    maxDays: float
    avgDays: float


class ExpeditedProcessing(BaseModel):
    available: bool
    days: Optional[float] = None
    additionalCost: Optional[float] = None


class ProcessingTimes(BaseModel):
    standard: StandardProcessing
    expedited: Optional[ExpeditedProcessing] = None


class EligibilityCriteria(BaseModel):
    minimumSalary: Optional[float] = None
    salaryCurrency: Optional[str] = None
    educationRequired: Optional[str] = None
    experienceYears: Optional[float] = None
    languageRequirement: Optional[str] = None
    ageLimit: Optional[float] = None
    additionalCriteria: list[str] = Field(default_factory=list)


class ApplicationStep(BaseModel):
    step: int
    title: str
    description: str
    estimatedDays: float
    onlineAvailable: bool


class ResearchSource(BaseModel):
    title: str
    url: str
    type: Literal["government", "official", "immigration_portal", "other"]


class VisaResearchOutput(BaseModel):
    """Structured output requested from the research oracle."""

    officialRequirements: list[ResearchRequirement]
    currentFees: CurrentFees
    processingTimes: ProcessingTimes
    eligibilityCriteria: EligibilityCriteria
    applicationSteps: list[ApplicationStep]
    recentChanges: list[str] = Field(default_factory=list)
    sources: list[ResearchSource] = Field(default_factory=list)
    aiSummary: str
    confidenceScore: float = Field(..., description="Confidence 0-100; lower when data is uncertain")

    @field_validator("confidenceScore")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return min(100.0, max(0.0, float(v)))


class ResearchRecord(BaseModel):
    id: str
    visa_code: str
    visa_type_id: Optional[str] = None
    researched_at: datetime
    expires_at: datetime
    official_requirements: list[ResearchRequirement]
    current_fees: CurrentFees
    processing_times: ProcessingTimes
    eligibility_criteria: EligibilityCriteria
    application_steps: list[ApplicationStep]
    recent_changes: list[str]
    sources: list[ResearchSource]
    ai_summary: str
    confidence_score: float = Field(..., ge=0, le=100)
    from_cache: bool = False


class ResearchResult(BaseModel):
    visa: VisaType
    research: ResearchRecord


def research_entity(doc: dict) -> dict:
    """Convert a MongoDB visa_research document to the ResearchRecord shape."""
    return {
        "id": str(doc["_id"]),
        "visa_code": doc["visa_code"],
        "visa_type_id": doc.get("visa_type_id"),
        "researched_at": doc["researched_at"],
        "expires_at": doc["expires_at"],
        "official_requirements": doc.get("official_requirements") or [],
        "current_fees": doc.get("current_fees"),
        "processing_times": doc.get("processing_times"),
        "eligibility_criteria": doc.get("eligibility_criteria"),
        "application_steps": doc.get("application_steps") or [],
        "recent_changes": doc.get("recent_changes") or [],
        "sources": doc.get("sources") or [],
        "ai_summary": doc.get("ai_summary", ""),
        "confidence_score": doc.get("confidence_score", 0),
    }
