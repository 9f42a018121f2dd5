import asyncio
import base64

import pytest
from bson import ObjectId

from app.ai.document_analyzer import MAX_UPLOAD_BYTES, DocumentAnalyzer, build_extraction_prompt
from app.auth.jwt import create_access_token
from app.config import get_settings
from app.errors import NotFoundError, OracleError, PersistenceError, ValidationError
from app.stores.documents import DocumentStore
from conftest import FakeOracle, sample_profile
from models.document import DocumentCreate, DocumentUpdate

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def passport_scan(confidence=92):
    return {
        "documentType": "passport",
        "extractedData": {"fullName": "Ada Lovelace", "nationality": "GB", "passportNumber": "123456789"},
        "confidence": confidence,
        "summary": "UK passport, valid until 2031",
    }


def document_body(**overrides):
    data = {
        "user_id": "user-1",
        "type": "passport",
        "file_name": "passport.png",
        "file_url": "https://files.example.com/passport.png",
        "file_size": 2048,
        "mime_type": "image/png",
    }
    data.update(overrides)
    return data


# store

def test_store_create_update_delete(db):
    store = DocumentStore(db)
    created = asyncio.run(store.create("user-1", DocumentCreate(**document_body())))

    assert created.status == "pending"
    assert created.extracted_data is None

    updated = asyncio.run(store.update(created.id, DocumentUpdate(status="completed", extracted_data={"fullName": "Ada"})))
    assert updated.status == "completed"
    assert updated.extracted_data == {"fullName": "Ada"}
    assert updated.file_name == "passport.png"

    assert asyncio.run(store.owner_of(created.id)) == "user-1"
    assert asyncio.run(store.delete(created.id)) is True
    assert asyncio.run(store.delete(created.id)) is False
    assert asyncio.run(store.delete("garbage")) is False
    with pytest.raises(NotFoundError):
        asyncio.run(store.get(created.id))


def test_store_update_without_fields(db):
    store = DocumentStore(db)
    created = asyncio.run(store.create("user-1", DocumentCreate(**document_body())))
    with pytest.raises(ValidationError):
        asyncio.run(store.update(created.id, DocumentUpdate()))


def test_store_lists_newest_first_per_user(db):
    store = DocumentStore(db)
    first = asyncio.run(store.create("user-1", DocumentCreate(**document_body(file_name="a.pdf"))))
    second = asyncio.run(store.create("user-1", DocumentCreate(**document_body(file_name="b.pdf"))))
    asyncio.run(store.create("user-2", DocumentCreate(**document_body())))

    assert [d.id for d in asyncio.run(store.list_for_user("user-1"))] == [second.id, first.id]


def test_malformed_document_is_a_persistence_error(db):
    inserted = asyncio.run(db.documents.insert_one({"user_id": "user-1", "type": "passport"}))
    with pytest.raises(PersistenceError):
        asyncio.run(DocumentStore(db).get(str(inserted.inserted_id)))


# analyzer

def test_image_scan_sends_inline_image():
    oracle = FakeOracle([passport_scan(confidence=140)])
    analysis = asyncio.run(DocumentAnalyzer(oracle, model="vision-model").analyze(
        "passport.png", "image/png", PNG_BYTES, "passport"
    ))

    assert analysis.requires_manual_entry is False
    assert analysis.document_type == "passport"
    assert analysis.confidence == 100
    assert analysis.extracted_data == {"fullName": "Ada Lovelace", "nationality": "GB", "passportNumber": "123456789"}

    call = oracle.calls[0]
    assert call["model"] == "vision-model"
    assert call["temperature"] == 0
    assert "passport number" in call["prompt"]
    part = call["attachments"][0]
    assert part["type"] == "image_url"
    assert part["image_url"]["url"] == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


def test_pdf_scan_sends_file_part():
    oracle = FakeOracle([passport_scan()])
    asyncio.run(DocumentAnalyzer(oracle).analyze("cv.pdf", "application/pdf", b"%PDF-1.7", "resume"))

    part = oracle.calls[0]["attachments"][0]
    assert part["type"] == "file"
    assert part["file"]["filename"] == "cv.pdf"
    assert part["file"]["file_data"].startswith("data:application/pdf;base64,")


def test_unsupported_format_needs_manual_entry():
    oracle = FakeOracle()
    analysis = asyncio.run(DocumentAnalyzer(oracle).analyze("cv.docx", "application/msword", b"doc", "resume"))

    assert analysis.requires_manual_entry is True
    assert analysis.document_type == "resume"
    assert analysis.extracted_data == {}
    assert oracle.calls == []


def test_oracle_failure_falls_back_to_manual_entry():
    oracle = FakeOracle([OracleError("HTTP 503")])
    analysis = asyncio.run(DocumentAnalyzer(oracle).analyze("passport.png", "image/png", PNG_BYTES, "passport"))

    assert analysis.requires_manual_entry is True
    assert analysis.document_type == "other"
    assert analysis.confidence == 0


@pytest.mark.parametrize("data", [b"", b"x" * (MAX_UPLOAD_BYTES + 1)])
def test_empty_or_oversized_file_is_rejected(data):
    oracle = FakeOracle()
    with pytest.raises(ValidationError):
        asyncio.run(DocumentAnalyzer(oracle).analyze("scan.png", "image/png", data))
    assert oracle.calls == []


def test_unknown_type_uses_generic_hint():
    assert "any relevant personal or professional information" in build_extraction_prompt("visa-stamp")


# routes

def test_document_routes_lifecycle(client):
    created = client.post("/api/v1/documents", json=document_body())
    assert created.status_code == 201
    document = created.json()["data"]
    assert document["status"] == "pending"
    url = f"/api/v1/documents/{document['id']}"

    listed = client.get("/api/v1/documents", params={"user_id": "user-1"}).json()
    assert listed["count"] == 1

    patched = client.patch(url, json={"status": "completed", "ai_analysis": "Valid passport"})
    assert patched.status_code == 200
    assert patched.json()["data"]["ai_analysis"] == "Valid passport"
    assert client.get(url).json()["data"]["status"] == "completed"

    assert client.delete(url).status_code == 200
    assert client.delete(url).status_code == 404
    assert client.get(url).status_code == 404


def test_document_requires_an_owner(client):
    resp = client.post("/api/v1/documents", json=document_body(user_id=None))
    assert resp.status_code == 400
    assert client.get("/api/v1/documents").status_code == 400


def test_invalid_document_type_is_400(client):
    resp = client.post("/api/v1/documents", json=document_body(type="visa-stamp"))
    assert resp.status_code == 400
    assert any("type" in d["loc"] for d in resp.json()["details"])


def test_documents_of_another_user_are_404(client):
    owner = {"Authorization": f"Bearer {create_access_token('user-1')}"}
    other = {"Authorization": f"Bearer {create_access_token('user-2')}"}
    document = client.post("/api/v1/documents", json=document_body(user_id=None), headers=owner).json()["data"]
    url = f"/api/v1/documents/{document['id']}"

    assert document["user_id"] == "user-1"
    assert client.get(url, headers=other).status_code == 404
    assert client.patch(url, json={"status": "error"}, headers=other).status_code == 404
    assert client.delete(url, headers=other).status_code == 404
    assert client.get("/api/v1/documents", params={"user_id": "user-1"}, headers=other).json()["count"] == 0
    assert client.get(url, headers=owner).json()["data"]["status"] == "pending"


def test_analyze_upload(client, oracle):
    oracle.responses.append(passport_scan())

    resp = client.post(
        "/api/v1/documents/analyze",
        files={"file": ("passport.png", PNG_BYTES, "image/png")},
        data={"type": "passport"},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["document_type"] == "passport"
    assert data["extracted_data"]["fullName"] == "Ada Lovelace"
    assert data["requires_manual_entry"] is False
    assert oracle.calls[0]["model"] == get_settings().openrouter_document_model


def test_analyze_empty_upload_is_400(client, oracle):
    resp = client.post("/api/v1/documents/analyze", files={"file": ("empty.png", b"", "image/png")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "No file provided"
    assert oracle.calls == []


def test_analyze_text_file_needs_manual_entry(client, oracle):
    resp = client.post("/api/v1/documents/analyze", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 200
    assert resp.json()["data"]["requires_manual_entry"] is True
    assert resp.json()["data"]["document_type"] == "other"


# profiles

def test_profiles_reuse_user_by_email(client, db):
    body = {**sample_profile(), "email": "Ada@Example.com", "name": "Ada"}

    first = client.post("/api/v1/profiles", json=body)
    second = client.post("/api/v1/profiles", json={**body, "profession": "Data Scientist"})

    assert first.status_code == 201
    user_id = first.json()["data"]["user_id"]
    assert second.json()["data"]["user_id"] == user_id
    assert asyncio.run(db.users.count_documents({})) == 1

    listed = client.get("/api/v1/profiles", params={"user_id": user_id}).json()
    assert listed["count"] == 2
    assert [p["profession"] for p in listed["data"]] == ["Data Scientist", "Software Engineer"]
    assert "email" not in asyncio.run(db.profiles.find_one({}))


def test_profile_owner_comes_from_token(client, db):
    headers = {"Authorization": f"Bearer {create_access_token('user-77')}"}
    resp = client.post("/api/v1/profiles", json={**sample_profile(), "email": "x@example.com"}, headers=headers)

    assert resp.json()["data"]["profile"]["user_id"] == "user-77"
    assert asyncio.run(db.users.count_documents({})) == 0
    assert client.get("/api/v1/profiles", headers=headers).json()["count"] == 1


def test_profile_validation(client):
    resp = client.post("/api/v1/profiles", json={**sample_profile(target_countries=[]), "email": "a@example.com"})
    assert resp.status_code == 400
    assert client.post("/api/v1/profiles", json=sample_profile()).status_code == 400
    assert client.get("/api/v1/profiles").status_code == 400


def test_unknown_profile_user_lists_nothing(client):
    assert client.get("/api/v1/profiles", params={"user_id": str(ObjectId())}).json()["count"] == 0
