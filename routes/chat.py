"""
Chat API: fixed prompts (GET) and the streaming visa assistant (POST).

The assistant sees the visa the user was viewing, their profile and latest
analysis results, and the documents they uploaded. Replies stream as plain
text. Not legal advice.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.ai.chat_agent import build_system_prompt, stream_visa_chat
from app.ai.chat_prompts import get_fixed_prompts
from app.auth.deps import ensure_owner, get_optional_user
from app.config import Settings
from app.deps import get_app_settings, get_chat_store, get_document_store, get_oracle, get_session_store
from app.errors import OracleError, ValidationError, VisaPathError
from app.stores.chat import ChatStore
from app.stores.documents import DocumentStore
from app.stores.sessions import AnalysisSessionStore
from models.chat import ChatRequest, ChatSessionDetail, ChatSessionOut, UploadedDocument
from models.common import ApiResponse, ok
from models.session import top_pathway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


async def _enrich_user_context(
    body: ChatRequest,
    user_id: Optional[str],
    sessions: AnalysisSessionStore,
) -> dict:
    context = dict(body.user_context or {})

    if user_id and "profile" not in context:
        try:
            latest = await sessions.latest_for_user(user_id)
        except VisaPathError as e:
            logger.warning("Could not load latest analysis for chat user %s: %s", user_id, e)
            latest = None
        if latest:
            context["profile"] = latest.profile_snapshot.model_dump(mode="json")

    if body.analysis_session_id:
        try:
            session = await sessions.get(body.analysis_session_id)
        except VisaPathError as e:
            logger.warning("Could not load analysis session %s for chat: %s", body.analysis_session_id, e)
            session = None
        if session:
            top = top_pathway(session.pathways)
            if top:
                context["topPathway"] = {
                    "visaTypeCode": top.visa_type_code,
                    "eligibilityScore": top.eligibility_score,
                    "successProbability": top.success_probability,
                }
            context["overallAssessment"] = session.overall_assessment

    return context


async def _stored_documents(user_id: Optional[str], documents: DocumentStore) -> list[UploadedDocument]:
    if not user_id:
        return []
    try:
        stored = await documents.list_for_user(user_id)
    except VisaPathError as e:
        logger.warning("Could not load documents for chat user %s: %s", user_id, e)
        return []
    return [UploadedDocument(type=d.type, file_name=d.file_name, status=d.status.value) for d in stored]


@router.get("/prompts")
async def get_chat_prompts():
    """
    Return the fixed prompt set for the visa assistant chat UI.

    Categories: My Results, Requirements, Timeline, Costs, Documents.
    """
    return ok({"categories": get_fixed_prompts()})


@router.post("")
async def chat(
    body: ChatRequest,
    oracle=Depends(get_oracle),
    settings: Settings = Depends(get_app_settings),
    sessions: AnalysisSessionStore = Depends(get_session_store),
    chats: ChatStore = Depends(get_chat_store),
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    """
    Chat with the visa assistant.

    The whole conversation goes in `messages`, oldest first; the reply is
    streamed back as text/plain. With `save_messages` and a known user the
    last user message and the complete reply are stored once the stream ends.
    A failure before the first chunk is reported as a 502 envelope.
    """
    if not oracle.configured:
        raise OracleError("OPENROUTER_API_KEY is not configured")
    if body.messages[-1].role != "user":
        raise ValidationError("The last message must come from the user")

    user_id = user["id"] if user else body.user_id

    existing_chat = None
    if body.chat_session_id:
        existing_chat = await chats.get_session(body.chat_session_id)
        if existing_chat is not None:
            ensure_owner(user, existing_chat.get("user_id"), "Chat session not found")

    context = await _enrich_user_context(body, user_id, sessions)
    uploaded = body.documents or await _stored_documents(user_id, documents)
    system_prompt = build_system_prompt(body.visa_context, context, uploaded)

    stream = stream_visa_chat(oracle, body.messages, system_prompt, settings.chat_temperature)
    try:
        first = await anext(stream)
    except StopAsyncIteration:
        first = None
    user_message = body.messages[-1].content

    async def save_exchange(reply: str) -> None:
        try:
            chat_session = existing_chat or await chats.get_or_create_active(
                user_id, body.analysis_session_id, first_message=user_message
            )
            await chats.append_exchange(chat_session, user_message, reply)
        except VisaPathError as e:
            logger.warning("Could not save chat exchange for user %s: %s", user_id, e)

    async def reply_stream():
        parts: list[str] = []
        if first is not None:
            parts.append(first)
            yield first
            try:
                async for chunk in stream:
                    parts.append(chunk)
                    yield chunk
            except OracleError as e:
                # headers are already sent; end the body without saving a partial reply
                logger.error("Chat stream failed mid-reply: %s", e.message)
                return
        if body.save_messages and user_id and parts:
            await save_exchange("".join(parts))

    return StreamingResponse(reply_stream(), media_type="text/plain; charset=utf-8")


@router.get("/sessions", response_model=ApiResponse[list[ChatSessionOut]])
async def list_chat_sessions(
    user_id: Optional[str] = None,
    chats: ChatStore = Depends(get_chat_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    owner = user["id"] if user else user_id
    if not owner:
        raise ValidationError("user_id is required")
    items = await chats.list_for_user(owner)
    return ok(items, count=len(items))


@router.get("/sessions/{chat_session_id}", response_model=ApiResponse[ChatSessionDetail])
async def get_chat_session(
    chat_session_id: str,
    chats: ChatStore = Depends(get_chat_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    detail = await chats.get_with_messages(chat_session_id)
    ensure_owner(user, detail["user_id"], "Chat session not found")
    return ok(detail)
