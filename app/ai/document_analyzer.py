"""
Document scanning: send an uploaded passport, diploma, CV, language
certificate or bank statement to a vision-capable model and get the
visible fields back as structured data.

Scanning is a convenience for filling in the profile form, so a failed scan
never fails the request: the caller gets `requires_manual_entry` instead.
"""

from __future__ import annotations

import logging
from typing import Optional

from app.ai.oracle import attachment_part
from app.errors import OracleError, ValidationError
from models.document import DocumentAnalysis, DocumentExtractionOutput

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

UNSUPPORTED_FORMAT_SUMMARY = "This file format cannot be scanned automatically. Please enter details manually."
SCAN_FAILED_SUMMARY = "Could not automatically scan this document. Please enter details manually."

TYPE_HINTS = {
    "passport": (
        "This appears to be a passport. Extract: full name, nationality, passport number, "
        "date of birth, expiry date, issue date, place of birth, gender."
    ),
    "degree": (
        "This appears to be an educational degree or diploma. Extract: holder's name, degree type, "
        "field of study, institution name, graduation date."
    ),
    "resume": (
        "This appears to be a resume/CV. Extract: full name, current job title, years of experience, "
        "key skills."
    ),
    "language": (
        "This appears to be a language test certificate (IELTS, TOEFL, JLPT, etc.). Extract: candidate "
        "name, test type, overall score, test date, expiry date if applicable."
    ),
    "financial": (
        "This appears to be a bank statement or financial document. Extract: account holder name, "
        "bank name, currency, account balance if visible."
    ),
    "transcript": (
        "This appears to be an academic transcript. Extract: student name, institution, field of study, "
        "GPA/grades if visible."
    ),
    "other": "Analyze this document and extract any relevant personal or professional information.",
}

EXTRACTION_SYSTEM_PROMPT = (
    "You are a document analysis AI for a visa application assistant. "
    "You read identity, education, employment, language and financial documents "
    "and report only what is actually visible."
)


def is_scannable(mime_type: str) -> bool:
    return mime_type.startswith("image/") or mime_type == "application/pdf"


def build_extraction_prompt(suggested_type: str) -> str:
    hint = TYPE_HINTS.get(suggested_type, TYPE_HINTS["other"])
    return f"""Analyze this uploaded document and extract structured information.

{hint}

Important:
- Extract dates in YYYY-MM-DD format when possible
- If information is not visible or unclear, set it to null
- Provide a confidence score (0-100) based on how clearly you could read the document
- Be thorough but only extract information that is actually visible

Analyze the document and extract the relevant information."""


class DocumentAnalyzer:
    def __init__(self, oracle, model: Optional[str] = None):
        self.oracle = oracle
        self.model = model

    async def analyze(
        self,
        file_name: str,
        mime_type: Optional[str],
        data: bytes,
        suggested_type: str = "other",
    ) -> DocumentAnalysis:
        """Extract fields from one file.

        Empty and oversized files are a ValidationError. Formats the model
        cannot read and oracle failures come back with
        `requires_manual_entry=True`.
        """
        if not data:
            raise ValidationError("No file provided")
        if len(data) > MAX_UPLOAD_BYTES:
            raise ValidationError("File too large. Maximum 10MB allowed.")

        mime_type = mime_type or "application/octet-stream"
        if not is_scannable(mime_type):
            return DocumentAnalysis(
                document_type=suggested_type,
                summary=UNSUPPORTED_FORMAT_SUMMARY,
                requires_manual_entry=True,
            )

        logger.info("Scanning %s (%s, %d bytes)", file_name, mime_type, len(data))
        try:
            result = await self.oracle.generate_structured(
                build_extraction_prompt(suggested_type),
                DocumentExtractionOutput,
                system=EXTRACTION_SYSTEM_PROMPT,
                temperature=0,
                model=self.model,
                attachments=[attachment_part(file_name, mime_type, data)],
            )
        except OracleError as e:
            logger.warning("Document scan failed for %s: %s", file_name, e.message)
            return DocumentAnalysis(
                document_type="other",
                summary=SCAN_FAILED_SUMMARY,
                requires_manual_entry=True,
            )

        logger.info("Scanned %s as %s with %.0f%% confidence", file_name, result.documentType, result.confidence)
        return DocumentAnalysis(
            document_type=result.documentType,
            extracted_data=result.extractedData.model_dump(exclude_none=True),
            confidence=result.confidence,
            summary=result.summary,
        )
