"""
Error taxonomy shared by the scorer, the research cache and the stores.

Routes never build error responses for these by hand: the handlers
registered in app.main map each class to a status code and the
{success: false, error} envelope.
"""

from __future__ import annotations

from typing import Any


class VisaPathError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None, details: list[Any] | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details


class ValidationError(VisaPathError):
    """Malformed or out-of-range caller input. Never retried."""

    status_code = 400
    public_message = "Invalid request data"


class NotFoundError(VisaPathError):
    status_code = 404
    public_message = "Not found"


class OracleError(VisaPathError):
    """The generative call failed, timed out or returned schema-invalid output."""

    status_code = 502
    public_message = "AI service error"


class PersistenceError(VisaPathError):
    """Store unreachable, write failed, or stored data failed validation."""

    status_code = 503
    public_message = "Storage unavailable"


def issues_from_pydantic(exc: Any) -> list[dict[str, Any]]:
    """Flatten a pydantic ValidationError into JSON-safe issue dicts."""
    issues = []
    for err in exc.errors():
        issues.append({
            "loc": [str(p) for p in err.get("loc", ())],
            "msg": err.get("msg"),
            "type": err.get("type"),
        })
    return issues
