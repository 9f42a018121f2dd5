"""Schemas for the visa type catalog."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class VisaRequirement(BaseModel):
    name: str
    priority: str = Field("important", description="critical, important or nice-to-have")


class VisaType(BaseModel):
    id: str
    code: str
    name: str
    country: str
    category: str = Field(..., description="work, study, entrepreneur, digital-nomad, family")
    description: Optional[str] = None
    processing_time_min: int = Field(..., ge=0)
    processing_time_avg: int = Field(..., ge=0)
    processing_time_max: int = Field(..., ge=0)
    application_fee: float = Field(..., ge=0)
    legal_fee: Optional[float] = None
    currency: str = "EUR"
    success_rate: float = Field(..., ge=0, le=100)
    salary_threshold: Optional[float] = None
    education_required: Optional[str] = None
    language_requirement: Optional[str] = None
    requirements: list[VisaRequirement] = Field(default_factory=list)


class VisaTypeSummary(BaseModel):
    """Subset of a visa type attached to each pathway in API responses."""

    id: str
    code: str
    name: str
    country: str
    category: str
    processing_time_avg: int
    application_fee: float
    legal_fee: Optional[float] = None
    currency: str
    success_rate: float

    @classmethod
    def from_visa_type(cls, visa: VisaType) -> "VisaTypeSummary":
        return cls(**visa.model_dump(include=set(cls.model_fields)))


def visa_type_entity(doc: dict) -> dict:
    """Convert a MongoDB visa_types document to the VisaType shape."""
    return {
        "id": str(doc["_id"]),
        "code": doc["code"],
        "name": doc["name"],
        "country": doc["country"],
        "category": doc["category"],
        "description": doc.get("description"),
        "processing_time_min": doc.get("processing_time_min", 0),
        "processing_time_avg": doc.get("processing_time_avg", 0),
        "processing_time_max": doc.get("processing_time_max", 0),
        "application_fee": doc.get("application_fee", 0),
        "legal_fee": doc.get("legal_fee"),
        "currency": doc.get("currency", "EUR"),
        "success_rate": doc.get("success_rate", 0),
        "salary_threshold": doc.get("salary_threshold"),
        "education_required": doc.get("education_required"),
        "language_requirement": doc.get("language_requirement"),
        "requirements": doc.get("requirements") or [],
    }
