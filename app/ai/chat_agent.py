"""
Visa assistant chat.

Builds the system prompt from the persona plus whatever context the caller
has (the visa being viewed, the user's profile and analysis results,
uploaded documents) and streams the oracle's reply.

Not legal advice. For general guidance only.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

from app.ai.prompts import CHAT_SYSTEM_PROMPT
from models.chat import ChatMessage, UploadedDocument, VisaContext


def _build_visa_context(visa: VisaContext | None) -> str:
    if not visa:
        return ""
    lines = [
        "CURRENT VISA CONTEXT:",
        "The user is asking about a specific visa they were viewing:",
        f"- Visa Code: {visa.code}",
        f"- Visa Name: {visa.name}",
        f"- Country: {visa.country}",
    ]
    if visa.category:
        lines.append(f"- Category: {visa.category}")
    if visa.description:
        lines.append(f"- Description: {visa.description}")
    if visa.processing_time_avg:
        lines.append(f"- Average Processing Time: {visa.processing_time_avg} days")
    if visa.application_fee:
        lines.append(f"- Application Fee: {visa.application_fee:g} {visa.currency or ''}".rstrip())
    if visa.ai_summary:
        lines.append(f"- Summary: {visa.ai_summary}")
    if visa.requirements:
        lines.append(f"- Key Requirements: {', '.join(visa.requirements)}")
    lines.append("")
    lines.append(
        "Focus your answers on this specific visa. If the user asks about other visas, "
        "you can compare them to this one."
    )
    return "\n".join(lines)


def _build_user_context(context: dict[str, Any] | None) -> str:
    if not context:
        return ""
    safe = {k: v for k, v in context.items() if v is not None}
    if not safe:
        return ""
    return (
        "USER CONTEXT:\n"
        f"{json.dumps(safe, indent=2, default=str)}\n\n"
        "Use this context to provide personalized, relevant advice about their visa options. "
        "Reference their specific profile details when answering questions."
    )


def _build_documents_context(documents: list[UploadedDocument]) -> str:
    if not documents:
        return ""
    lines = [
        "UPLOADED DOCUMENTS:",
        "The user has uploaded the following documents that you can reference:",
    ]
    for d in documents:
        lines.append(f"- {d.type}: {d.file_name} ({d.status})")
    lines.append("")
    lines.append(
        "When discussing visa requirements, you can mention which of their documents "
        "might be relevant or if any are missing."
    )
    return "\n".join(lines)


def build_system_prompt(
    visa_context: VisaContext | None = None,
    user_context: dict[str, Any] | None = None,
    documents: list[UploadedDocument] | None = None,
) -> str:
    sections = [
        CHAT_SYSTEM_PROMPT,
        _build_visa_context(visa_context),
        _build_user_context(user_context),
        _build_documents_context(documents or []),
    ]
    return "\n\n".join(s for s in sections if s)


async def stream_visa_chat(
    oracle,
    messages: list[ChatMessage],
    system_prompt: str,
    temperature: float | None = None,
) -> AsyncIterator[str]:
    history = [{"role": m.role, "content": m.content} for m in messages]
    async for chunk in oracle.generate_stream(history, system_prompt, temperature=temperature):
        yield chunk
