"""Schemas for uploaded document metadata and AI document extraction."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator


class DocumentType(str, Enum):
    PASSPORT = "passport"
    DEGREE = "degree"
    TRANSCRIPT = "transcript"
    RESUME = "resume"
    COVER_LETTER = "cover-letter"
    RECOMMENDATION = "recommendation"
    FINANCIAL = "financial"
    LANGUAGE = "language"
    OTHER = "other"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class DocumentCreate(BaseModel):
    """Request body for POST /documents. The file itself lives in external storage."""

    user_id: Optional[str] = Field(None, description="Owner; taken from the bearer token when present")
    type: DocumentType
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: AnyHttpUrl
    file_size: int = Field(..., ge=0, description="Bytes")
    mime_type: Optional[str] = Field(None, max_length=100)


class DocumentUpdate(BaseModel):
    extracted_data: Optional[dict[str, Any]] = None
    ai_analysis: Optional[str] = None
    status: Optional[DocumentStatus] = None


class DocumentOut(BaseModel):
    id: str
    user_id: str
    type: str
    file_name: str
    file_url: str
    file_size: int
    mime_type: Optional[str] = None
    extracted_data: Optional[dict[str, Any]] = None
    ai_analysis: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PENDING
    created_at: datetime
    updated_at: datetime


class ExtractedFields(BaseModel):
    fullName: Optional[str] = Field(None, description="Full name of the person")
    # passport
    nationality: Optional[str] = Field(None, description="Nationality/citizenship")
    passportNumber: Optional[str] = Field(None, description="Passport or ID number")
    dateOfBirth: Optional[str] = Field(None, description="Date of birth in YYYY-MM-DD format")
    expiryDate: Optional[str] = Field(None, description="Expiry date in YYYY-MM-DD format")
    issueDate: Optional[str] = Field(None, description="Issue date in YYYY-MM-DD format")
    placeOfBirth: Optional[str] = Field(None, description="Place of birth")
    gender: Optional[str] = Field(None, description="Gender (M/F/X)")
    # degree
    degreeType: Optional[str] = Field(None, description="Type of degree (Bachelor's, Master's, PhD)")
    fieldOfStudy: Optional[str] = Field(None, description="Field of study or major")
    institution: Optional[str] = Field(None, description="University or institution name")
    graduationDate: Optional[str] = Field(None, description="Graduation date in YYYY-MM-DD format")
    # resume
    currentTitle: Optional[str] = Field(None, description="Current job title")
    yearsExperience: Optional[str] = Field(None, description="Years of experience")
    skills: Optional[str] = Field(None, description="Key skills, comma separated")
    # language certificate
    testType: Optional[str] = Field(None, description="Test type (IELTS, TOEFL, JLPT, etc.)")
    overallScore: Optional[str] = Field(None, description="Overall score or level")
    testDate: Optional[str] = Field(None, description="Test date in YYYY-MM-DD format")
    # financial
    bankName: Optional[str] = Field(None, description="Bank name")
    accountBalance: Optional[str] = Field(None, description="Account balance amount")
    currency: Optional[str] = Field(None, description="Currency code (USD, EUR, etc.)")


class DocumentExtractionOutput(BaseModel):
    """Structured output requested from the oracle for one scanned document."""

    documentType: Literal["passport", "degree", "resume", "language", "financial", "transcript", "other"]
    extractedData: ExtractedFields
    confidence: float = Field(..., description="Confidence score 0-100")
    summary: str = Field(..., description="Brief summary of what was extracted")

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return min(100.0, max(0.0, float(v)))


class DocumentAnalysis(BaseModel):
    document_type: str
    extracted_data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = 0
    summary: str
    requires_manual_entry: bool = False


def document_entity(doc: dict) -> dict:
    """Convert a MongoDB documents document to the DocumentOut shape."""
    return {
        "id": str(doc["_id"]),
        "user_id": str(doc["user_id"]),
        "type": doc["type"],
        "file_name": doc["file_name"],
        "file_url": doc["file_url"],
        "file_size": doc.get("file_size", 0),
        "mime_type": doc.get("mime_type"),
        "extracted_data": doc.get("extracted_data"),
        "ai_analysis": doc.get("ai_analysis"),
        "status": doc.get("status", DocumentStatus.PENDING.value),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }
