"""Schemas for the eligibility scoring API and the oracle contract behind it."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.profile import ApplicantProfile
from models.visa import VisaTypeSummary

MAX_PATHWAYS = 5


def clamp(value: float, low: float = 0.0, high: float | None = 100.0) -> float:
    value = max(low, float(value))
    if high is not None:
        value = min(high, value)
    return value


class OraclePathway(BaseModel):
    """One pathway as the oracle reports it. Ranges are clamped, not rejected."""

    visaTypeCode: str = Field(..., description="Exact 'code' of one of the listed visa types (e.g. 'de-blue-card')")
    eligibilityScore: float = Field(..., description="Eligibility score from 0-100")
    successProbability: float = Field(..., description="Success probability percentage 0-100")
    estimatedProcessingTime: float = Field(..., description="Estimated processing time in days")
    totalCostEstimate: float = Field(..., description="Total estimated cost in USD")
    reasoning: str = Field(..., description="Detailed explanation for this pathway")
    nextSteps: list[str] = Field(default_factory=list, description="Ordered list of next steps")
    riskFactors: list[str] = Field(default_factory=list, description="Potential risk factors")

    @field_validator("eligibilityScore", "successProbability")
    @classmethod
    def _percent(cls, v: float) -> float:
        return clamp(v)

    @field_validator("estimatedProcessingTime", "totalCostEstimate")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        return clamp(v, high=None)

    @field_validator("visaTypeCode")
    @classmethod
    def _code(cls, v: str) -> str:
        return v.strip().lower()


class EligibilityOracleOutput(BaseModel):
    pathways: list[OraclePathway] = Field(
        ...,
        description="Top recommended visa pathways, ranked by fit",
        json_schema_extra={"maxItems": MAX_PATHWAYS},
    )
    overallAssessment: str = Field(..., description="Overall assessment summary")
    topRecommendation: str = Field("", description="The visa code of the top recommended pathway")


class PathwayAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    visa_type_code: str
    eligibility_score: float = Field(..., ge=0, le=100)
    success_probability: float = Field(..., ge=0, le=100)
    estimated_processing_time: float = Field(..., ge=0, description="Days")
    total_cost_estimate: float = Field(..., ge=0)
    reasoning: str
    next_steps: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    recommendation_rank: int = Field(..., ge=1)


class ScoringResult(BaseModel):
    assessments: list[PathwayAssessment]
    overall_assessment: str
    top_recommendation_code: Optional[str] = None
    candidates_analyzed: int = 0


class EligibilityRequest(BaseModel):
    """Request body for POST /eligibility."""

    profile: ApplicantProfile
    save: bool = Field(True, description="Persist the run as an analysis session")


class PathwayOut(PathwayAssessment):
    visa_type: Optional[VisaTypeSummary] = None


class EligibilityResult(BaseModel):
    pathways: list[PathwayOut]
    overall_assessment: str
    top_recommendation: Optional[str] = None
    session_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
