"""Schemas for the chat API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """Single message in conversation history."""

    role: Literal["user", "assistant"] = Field(..., description="'user' or 'assistant'")
    content: str = Field(..., min_length=1, max_length=4000, description="Message content")


class VisaContext(BaseModel):
    """The visa the user was viewing when they opened the chat."""

    code: str
    name: str
    country: str
    category: Optional[str] = None
    description: Optional[str] = None
    processing_time_avg: Optional[int] = None
    application_fee: Optional[float] = None
    currency: Optional[str] = None
    ai_summary: Optional[str] = None
    requirements: list[str] = Field(default_factory=list)


class UploadedDocument(BaseModel):
    type: str
    file_name: str
    status: str = "uploaded"


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    messages: list[ChatMessage] = Field(..., min_length=1)
    visa_context: Optional[VisaContext] = None
    user_context: Optional[dict[str, Any]] = None
    documents: list[UploadedDocument] = Field(default_factory=list)
    user_id: Optional[str] = None
    analysis_session_id: Optional[str] = Field(None, description="Analysis session the user is asking about")
    chat_session_id: Optional[str] = None
    save_messages: bool = False


class ChatSessionOut(BaseModel):
    id: str
    user_id: str
    analysis_session_id: Optional[str] = None
    title: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ChatMessageOut(BaseModel):
    id: str
    session_id: str
    role: str
    content: str
    created_at: datetime


class ChatSessionDetail(ChatSessionOut):
    messages: list[ChatMessageOut] = Field(default_factory=list)


def chat_session_entity(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "user_id": str(doc["user_id"]),
        "analysis_session_id": str(doc["analysis_session_id"]) if doc.get("analysis_session_id") else None,
        "title": doc.get("title"),
        "is_active": doc.get("is_active", True),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }


def chat_message_entity(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "session_id": str(doc["session_id"]),
        "role": doc["role"],
        "content": doc["content"],
        "created_at": doc.get("created_at"),
    }
