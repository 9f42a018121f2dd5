"""Applicant profile submitted to the eligibility scorer."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

COUNTRY_CODE_RE = re.compile(r"^[A-Z]{2,3}$")


class EducationLevel(str, Enum):
    HIGH_SCHOOL = "high-school"
    BACHELOR = "bachelor"
    MASTER = "master"
    PHD = "phd"


def normalize_country_code(value: str) -> str:
    code = (value or "").strip().upper()
    if not COUNTRY_CODE_RE.match(code):
        raise ValueError(f"'{value}' is not an ISO country code")
    return code


class ApplicantProfile(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    current_country: str = Field(..., description="ISO code of the country the applicant lives in")
    target_countries: list[str] = Field(..., min_length=1, max_length=5, description="1-5 ISO codes")
    profession: str = Field(..., min_length=1, max_length=255)
    years_experience: int = Field(..., ge=0, le=50)
    education: EducationLevel
    languages: list[str] = Field(..., min_length=1, description="Spoken languages")
    salary: float = Field(..., ge=0, description="Annual salary in USD")
    email: Optional[EmailStr] = None

    @field_validator("current_country")
    @classmethod
    def _current_country(cls, v: str) -> str:
        return normalize_country_code(v)

    @field_validator("target_countries")
    @classmethod
    def _target_countries(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for code in v:
            code = normalize_country_code(code)
            if code not in seen:
                seen.append(code)
        return seen

    @field_validator("profession")
    @classmethod
    def _profession(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("profession must not be blank")
        return v

    @field_validator("languages")
    @classmethod
    def _languages(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for lang in v:
            lang = lang.strip()
            if lang and lang.lower() not in (x.lower() for x in out):
                out.append(lang)
        if not out:
            raise ValueError("at least one language is required")
        return out

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        # the intake form submits "" when the field is left empty
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProfileCreateRequest(ApplicantProfile):
    """Request body for POST /profiles: the intake form plus the owner's identity."""

    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)


class StoredProfile(ApplicantProfile):
    id: str
    user_id: str
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


def profile_entity(doc: dict) -> dict:
    """Convert a MongoDB profiles document to the StoredProfile shape."""
    return {
        "id": str(doc["_id"]),
        "user_id": str(doc["user_id"]),
        "current_country": doc["current_country"],
        "target_countries": doc.get("target_countries") or [],
        "profession": doc["profession"],
        "years_experience": doc["years_experience"],
        "education": doc["education"],
        "languages": doc.get("languages") or [],
        "salary": doc["salary"],
        "is_active": doc.get("is_active", True),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }
