import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from app.errors import NotFoundError, PersistenceError, ValidationError
from app.stores.sessions import AnalysisSessionStore
from app.stores.users import get_or_create_user
from conftest import sample_profile
from models.eligibility import PathwayAssessment
from models.profile import ApplicantProfile


def _assessment(code, score, rank):
    return PathwayAssessment(
        visa_type_code=code,
        eligibility_score=score,
        success_probability=80,
        estimated_processing_time=45,
        total_cost_estimate=2000,
        reasoning="fits",
        recommendation_rank=rank,
    )


ASSESSMENTS = [_assessment("de-blue-card", 92, 1), _assessment("nl-hsm", 88, 2)]


class Ticker:
    """Clock that moves one second per call."""

    def __init__(self):
        self.now = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store(db):
    return AnalysisSessionStore(db, clock=Ticker())


def _create(store, assessments=ASSESSMENTS, **kwargs):
    profile = ApplicantProfile(**sample_profile())
    return asyncio.run(store.create(profile, assessments, "Good prospects", "de-blue-card", **kwargs))


def test_create_then_get(store):
    session_id = _create(store, user_id="u1")
    session = asyncio.run(store.get(session_id))

    assert session.id == session_id
    assert session.user_id == "u1"
    assert session.status == "active"
    assert session.pathways_count == 2
    assert session.top_pathway_code == "de-blue-card"
    assert session.top_pathway_score == 92
    assert session.target_countries == ["DE", "NL"]
    assert session.profile_snapshot.profession == "Software Engineer"
    assert [p.visa_type_code for p in session.pathways] == ["de-blue-card", "nl-hsm"]


def test_empty_run_has_no_top_pathway(store):
    session = asyncio.run(store.get(_create(store, assessments=[])))
    assert session.pathways_count == 0
    assert session.top_pathway_code is None
    assert session.top_pathway_score is None


def test_inconsistent_top_pair_is_rederived(db, store):
    session_id = _create(store)
    asyncio.run(db.analysis_sessions.update_one(
        {"_id": ObjectId(session_id)}, {"$set": {"top_pathway_code": "nl-hsm", "top_pathway_score": 1}}
    ))
    session = asyncio.run(store.get(session_id))
    assert (session.top_pathway_code, session.top_pathway_score) == ("de-blue-card", 92)


def test_list_filters_by_user_and_status_newest_first(store):
    first = _create(store, user_id="u1")
    second = _create(store, user_id="u1")
    _create(store, user_id="u2")
    asyncio.run(store.update_status(first, "archived"))

    active = asyncio.run(store.list_sessions(user_id="u1", status="active"))
    everything = asyncio.run(store.list_sessions(user_id="u1", status="all"))
    unfiltered = asyncio.run(store.list_sessions(user_id="u1"))
    archived = asyncio.run(store.list_sessions(user_id="u1", status="archived"))

    assert [s.id for s in active] == [second]
    assert [s.id for s in everything] == [second, first]
    assert [s.id for s in unfiltered] == [second, first]
    assert [s.id for s in archived] == [first]


def test_list_limit(store):
    for _ in range(3):
        _create(store, user_id="u1")
    assert len(asyncio.run(store.list_sessions(user_id="u1", limit=2))) == 2


def test_update_status_and_title(store):
    session_id = _create(store)
    before = asyncio.run(store.get(session_id))

    updated = asyncio.run(store.update(session_id, status="starred", title="  Berlin plan  "))

    assert updated.status == "starred"
    assert updated.title == "Berlin plan"
    assert updated.updated_at > before.updated_at
    assert updated.created_at == before.created_at
    assert updated.pathways == before.pathways


def test_invalid_status_is_rejected_before_lookup(store):
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(store.update(str(ObjectId()), status="deleted"))
    assert exc_info.value.details[0]["loc"] == ["status"]

    session_id = _create(store)
    with pytest.raises(ValidationError):
        asyncio.run(store.update_status(session_id, "bogus"))
    assert asyncio.run(store.get(session_id)).status == "active"

    with pytest.raises(ValidationError):
        asyncio.run(store.list_sessions(status="bogus"))


def test_update_without_fields(store):
    with pytest.raises(ValidationError):
        asyncio.run(store.update(_create(store)))


@pytest.mark.parametrize("session_id", ["not-an-object-id", str(ObjectId())])
def test_missing_session(store, session_id):
    with pytest.raises(NotFoundError):
        asyncio.run(store.get(session_id))
    with pytest.raises(NotFoundError):
        asyncio.run(store.update(session_id, status="archived"))


def test_delete_is_idempotent(store):
    session_id = _create(store)
    assert asyncio.run(store.delete(session_id)) is True
    assert asyncio.run(store.delete(session_id)) is False
    assert asyncio.run(store.delete("garbage")) is False
    with pytest.raises(NotFoundError):
        asyncio.run(store.get(session_id))


def test_malformed_document_is_a_persistence_error(db, store):
    inserted = asyncio.run(db.analysis_sessions.insert_one({"status": "active", "pathways": "oops"}))
    with pytest.raises(PersistenceError):
        asyncio.run(store.get(str(inserted.inserted_id)))


def test_latest_for_user(store):
    assert asyncio.run(store.latest_for_user("nobody")) is None
    _create(store, user_id="u1")
    newest = _create(store, user_id="u1")
    assert asyncio.run(store.latest_for_user("u1")).id == newest


def test_get_or_create_user_is_stable(db):
    first = asyncio.run(get_or_create_user(db, "Ada@Example.com"))
    second = asyncio.run(get_or_create_user(db, "ada@example.com "))
    assert first == second
    assert asyncio.run(db.users.count_documents({})) == 1


def test_owner_of(store):
    session_id = _create(store, user_id="u1")
    assert asyncio.run(store.owner_of(session_id)) == "u1"
    assert asyncio.run(store.owner_of(_create(store))) is None
    with pytest.raises(NotFoundError):
        asyncio.run(store.owner_of(str(ObjectId())))
