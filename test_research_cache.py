import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.ai.research_cache import CACHE_DURATION, ResearchCache, build_research_prompt, to_store_precision
from app.errors import NotFoundError, OracleError
from app.stores.catalog import VisaCatalog
from conftest import FakeOracle, research_output


class Clock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock(datetime(2026, 10, 19, 9, 30, 15, 123456, tzinfo=timezone.utc))


def test_miss_then_hit_returns_equal_record(db, clock):
    oracle = FakeOracle([research_output()])
    cache = ResearchCache(db, oracle, clock=clock)

    fresh = asyncio.run(cache.get_research("de-blue-card"))
    clock.advance(days=1)
    cached = asyncio.run(cache.get_research("de-blue-card"))

    assert fresh.from_cache is False
    assert cached.from_cache is True
    assert len(oracle.calls) == 1
    assert cached.model_dump(exclude={"from_cache"}) == fresh.model_dump(exclude={"from_cache"})
    assert fresh.expires_at - fresh.researched_at == CACHE_DURATION
    assert fresh.researched_at.microsecond == 123000


def test_lookup_is_case_insensitive(db, clock):
    oracle = FakeOracle([research_output()])
    cache = ResearchCache(db, oracle, clock=clock)

    asyncio.run(cache.get_research("DE-Blue-Card"))
    record = asyncio.run(cache.get_research("de-blue-card"))

    assert record.visa_code == "de-blue-card"
    assert record.from_cache is True


def test_expired_record_is_replaced(db, clock):
    oracle = FakeOracle([research_output("old"), research_output("new")])
    cache = ResearchCache(db, oracle, clock=clock)

    asyncio.run(cache.get_research("nl-hsm"))
    clock.advance(days=7)
    record = asyncio.run(cache.get_research("nl-hsm"))

    assert record.from_cache is False
    assert record.ai_summary == "new"
    assert asyncio.run(db.visa_research.count_documents({"visa_code": "nl-hsm"})) == 1


def test_record_is_live_until_just_before_expiry(db, clock):
    oracle = FakeOracle([research_output()])
    cache = ResearchCache(db, oracle, clock=clock)

    asyncio.run(cache.get_research("nl-hsm"))
    clock.advance(days=7, milliseconds=-1)

    assert asyncio.run(cache.get_research("nl-hsm")).from_cache is True


def test_refresh_replaces_live_record(db, clock):
    oracle = FakeOracle([research_output("first"), research_output("second")])
    cache = ResearchCache(db, oracle, clock=clock)

    asyncio.run(cache.get_research("uk-global-talent"))
    clock.advance(hours=1)
    record = asyncio.run(cache.refresh_research("uk-global-talent"))

    assert record.from_cache is False
    assert record.ai_summary == "second"
    rows = asyncio.run(db.visa_research.find({"visa_code": "uk-global-talent"}).to_list(length=None))
    now = to_store_precision(clock())
    assert len([r for r in rows if to_store_precision(r["expires_at"]) > now]) == 1
    assert len(rows) == 1


def test_get_after_refresh_is_served_from_cache(db, clock):
    oracle = FakeOracle([research_output()])
    cache = ResearchCache(db, oracle, clock=clock)

    refreshed = asyncio.run(cache.refresh_research("nl-hsm"))
    clock.advance(minutes=5)
    cached = asyncio.run(cache.get_research("nl-hsm"))

    assert cached.from_cache is True
    assert cached.id == refreshed.id
    assert cached.researched_at == refreshed.researched_at


def test_unknown_code_never_reaches_the_oracle(db, clock):
    oracle = FakeOracle()
    cache = ResearchCache(db, oracle, clock=clock)

    with pytest.raises(NotFoundError):
        asyncio.run(cache.get_research("xx-nothing"))
    with pytest.raises(NotFoundError):
        asyncio.run(cache.refresh_research("xx-nothing"))
    assert oracle.calls == []


def test_oracle_failure_on_miss_stores_nothing(db, clock):
    oracle = FakeOracle([OracleError("bad output")])
    cache = ResearchCache(db, oracle, clock=clock)

    with pytest.raises(OracleError):
        asyncio.run(cache.get_research("de-blue-card"))
    assert asyncio.run(db.visa_research.count_documents({})) == 0


def test_malformed_cached_row_counts_as_miss(db, clock):
    asyncio.run(db.visa_research.insert_one({
        "visa_code": "de-blue-card",
        "researched_at": clock(),
        "expires_at": clock() + CACHE_DURATION,
        "ai_summary": "half written",
    }))
    oracle = FakeOracle([research_output()])
    cache = ResearchCache(db, oracle, clock=clock)

    record = asyncio.run(cache.get_research("de-blue-card"))

    assert record.from_cache is False
    assert asyncio.run(db.visa_research.count_documents({"visa_code": "de-blue-card"})) == 1


def test_confidence_score_is_clamped(db, clock):
    oracle = FakeOracle([research_output(confidence=150)])
    record = asyncio.run(ResearchCache(db, oracle, clock=clock).get_research("de-blue-card"))
    assert record.confidence_score == 100


def test_naive_datetimes_are_read_as_utc():
    naive = datetime(2026, 10, 19, 12, 0, 0, 999999)
    assert to_store_precision(naive) == datetime(2026, 10, 19, 12, 0, 0, 999000, tzinfo=timezone.utc)


def test_research_prompt_names_the_country(db, clock):
    visa = asyncio.run(VisaCatalog(db).get_by_code("de-blue-card"))
    prompt = build_research_prompt(visa, clock())
    assert "Germany" in prompt
    assert "EU Blue Card" in prompt
    assert "2026-10-19" in prompt
