import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.ai.document_analyzer import DocumentAnalyzer
from app.auth.deps import ensure_owner, get_optional_user
from app.deps import get_document_analyzer, get_document_store
from app.errors import NotFoundError, ValidationError
from app.stores.documents import DocumentStore
from models.common import ok
from models.document import DocumentCreate, DocumentType, DocumentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", status_code=201)
async def create_document(
    body: DocumentCreate,
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    """Register an uploaded file. The bytes stay in external storage; only metadata is kept."""
    owner = user["id"] if user else body.user_id
    if not owner:
        raise ValidationError("user_id is required")
    document = await documents.create(owner, body)
    return ok(document.model_dump(mode="json"))


@router.get("")
async def list_documents(
    user_id: Optional[str] = None,
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    owner = user["id"] if user else user_id
    if not owner:
        raise ValidationError("user_id is required")
    items = await documents.list_for_user(owner)
    return ok([d.model_dump(mode="json") for d in items], count=len(items))


@router.post("/analyze")
async def analyze_document(
    file: UploadFile = File(...),
    type: DocumentType = Form(DocumentType.OTHER),
    analyzer: DocumentAnalyzer = Depends(get_document_analyzer),
):
    """
    Scan a passport, diploma, CV, language certificate or bank statement and
    return the fields the model could read.

    Images and PDFs up to 10MB are scanned. Anything else, or a scan that
    fails, comes back with `requires_manual_entry` so the form can fall back
    to typing. Nothing is stored.
    """
    data = await file.read()
    analysis = await analyzer.analyze(file.filename or "upload", file.content_type, data, type.value)
    return ok(analysis.model_dump())


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    document = await documents.get(document_id)
    ensure_owner(user, document.user_id, "Document not found")
    return ok(document.model_dump(mode="json"))


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    body: DocumentUpdate,
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    if user is not None:
        ensure_owner(user, await documents.owner_of(document_id), "Document not found")
    document = await documents.update(document_id, body)
    return ok(document.model_dump(mode="json"))


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    documents: DocumentStore = Depends(get_document_store),
    user: Optional[dict] = Depends(get_optional_user),
):
    if user is not None:
        ensure_owner(user, await documents.owner_of(document_id), "Document not found")
    if not await documents.delete(document_id):
        raise NotFoundError("Document not found")
    logger.info("Deleted document %s", document_id)
    return ok({"deleted": document_id})
