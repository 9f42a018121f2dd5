import asyncio
from datetime import date

import pytest

from app.ai.eligibility_scorer import EligibilityScorer, build_eligibility_prompt, rank_pathways
from app.errors import OracleError, ValidationError
from app.stores.catalog import VisaCatalog
from conftest import FakeOracle, eligibility_output, pathway, sample_profile
from models.eligibility import OraclePathway
from models.profile import ApplicantProfile


def _candidates(db, countries=("DE", "NL")):
    return asyncio.run(VisaCatalog(db).candidates_for(list(countries)))


def test_us_engineer_to_germany_and_netherlands(db):
    profile = ApplicantProfile(**sample_profile())
    candidates = _candidates(db)
    oracle = FakeOracle([eligibility_output(
        pathway("nl-hsm", 88),
        pathway("de-blue-card", 92),
        pathway("de-skilled-worker", 75),
        top="nl-hsm",
    )])

    result = asyncio.run(EligibilityScorer(oracle).score(profile, candidates))

    assert [a.visa_type_code for a in result.assessments] == ["de-blue-card", "nl-hsm", "de-skilled-worker"]
    assert [a.recommendation_rank for a in result.assessments] == [1, 2, 3]
    # rank-1 code wins over the oracle's own claim
    assert result.top_recommendation_code == "de-blue-card"
    assert result.candidates_analyzed == len(candidates)
    assert oracle.calls[0]["temperature"] == 0.3


def test_unknown_and_duplicate_codes_are_dropped(db):
    profile = ApplicantProfile(**sample_profile())
    oracle = FakeOracle([eligibility_output(
        pathway("us-h1b", 99),
        pathway("DE-BLUE-CARD", 80),
        pathway("de-blue-card", 95),
        pathway("made-up-visa", 90),
    )])

    result = asyncio.run(EligibilityScorer(oracle).score(profile, _candidates(db)))

    assert [a.visa_type_code for a in result.assessments] == ["de-blue-card"]
    # the first occurrence is kept
    assert result.assessments[0].eligibility_score == 80


def test_at_most_five_pathways_with_dense_ranks():
    codes = [f"v{i}" for i in range(8)]
    pathways = [OraclePathway(**pathway(c, 50 + i)) for i, c in enumerate(codes)]

    ranked = rank_pathways(pathways, set(codes))

    assert len(ranked) == 5
    assert [a.recommendation_rank for a in ranked] == [1, 2, 3, 4, 5]
    scores = [a.eligibility_score for a in ranked]
    assert scores == sorted(scores, reverse=True)


def test_equal_scores_keep_oracle_order():
    pathways = [OraclePathway(**pathway(c, 70)) for c in ("b", "a", "c")]
    ranked = rank_pathways(pathways, {"a", "b", "c"})
    assert [a.visa_type_code for a in ranked] == ["b", "a", "c"]


def test_out_of_range_scores_are_clamped():
    p = OraclePathway(**pathway("x", 140, successProbability=-5, totalCostEstimate=-1))
    assert p.eligibilityScore == 100
    assert p.successProbability == 0
    assert p.totalCostEstimate == 0


def test_all_pathways_invalid_gives_empty_result(db):
    oracle = FakeOracle([eligibility_output(pathway("nowhere", 90))])
    result = asyncio.run(EligibilityScorer(oracle).score(ApplicantProfile(**sample_profile()), _candidates(db)))
    assert result.assessments == []
    assert result.top_recommendation_code is None


def test_no_candidates_is_a_validation_error():
    oracle = FakeOracle()
    with pytest.raises(ValidationError):
        asyncio.run(EligibilityScorer(oracle).score(ApplicantProfile(**sample_profile()), []))
    assert oracle.calls == []


def test_oracle_failure_propagates(db):
    oracle = FakeOracle([OracleError("timeout")])
    with pytest.raises(OracleError):
        asyncio.run(EligibilityScorer(oracle).score(ApplicantProfile(**sample_profile()), _candidates(db)))


def test_prompt_lists_candidates_and_profile(db):
    profile = ApplicantProfile(**sample_profile())
    prompt = build_eligibility_prompt(profile, _candidates(db), date(2026, 10, 19))

    assert "October 19, 2026" in prompt
    assert "de-blue-card" in prompt
    assert "nl-hsm" in prompt
    assert "us-h1b" not in prompt
    assert "Software Engineer" in prompt


def test_profile_normalization():
    profile = ApplicantProfile(**sample_profile(
        target_countries=["de", "DE", " nl "],
        languages=["English", "english", "German"],
        email="",
    ))
    assert profile.target_countries == ["DE", "NL"]
    assert profile.languages == ["English", "German"]
    assert profile.email is None


@pytest.mark.parametrize("overrides", [
    {"target_countries": []},
    {"target_countries": ["DE", "NL", "UK", "US", "CA", "AU"]},
    {"years_experience": 51},
    {"salary": -1},
    {"profession": "   "},
    {"languages": []},
    {"education": "kindergarten"},
    {"current_country": "Germany"},
])
def test_invalid_profiles_are_rejected(overrides):
    with pytest.raises(ValueError):
        ApplicantProfile(**sample_profile(**overrides))
