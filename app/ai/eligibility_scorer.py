"""
Eligibility scorer.

Turns an applicant profile and a candidate set of visa types into at most
five ranked pathway assessments. The oracle does the judging; everything
derived from its answer is recomputed here:

- pathways naming a visa code outside the candidate set are dropped
  (hallucinated codes never reach the caller, not even renamed),
- duplicate codes keep their first occurrence,
- ranks come from a stable sort on eligibility score, so ties keep the
  oracle's order,
- the top recommendation is the rank-1 code, not the oracle's claim.

The scorer has no side effects. Persisting a run is the caller's job (see
app.stores.sessions), which keeps failed or cancelled calls from leaving
partial sessions behind.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Callable

from app.ai.prompts import ELIGIBILITY_SYSTEM_PROMPT
from app.errors import ValidationError
from models.eligibility import (
    MAX_PATHWAYS,
    EligibilityOracleOutput,
    OraclePathway,
    PathwayAssessment,
    ScoringResult,
)
from models.profile import ApplicantProfile
from models.visa import VisaType

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _fmt_money(amount: float) -> str:
    return f"{amount:,.0f}"


def visa_for_prompt(v: VisaType) -> dict:
    """Fixed-order description of one candidate visa type."""
    cost = f"{_fmt_money(v.application_fee)} {v.currency}"
    if v.legal_fee:
        cost += f" + {_fmt_money(v.legal_fee)} {v.currency} legal fees"
    return {
        "code": v.code,
        "name": v.name,
        "country": v.country,
        "category": v.category,
        "description": v.description or "",
        "processingTime": f"{v.processing_time_min}-{v.processing_time_max} days (avg: {v.processing_time_avg})",
        "cost": cost,
        "successRate": f"{v.success_rate:g}%",
        "salaryThreshold": f"{_fmt_money(v.salary_threshold)} {v.currency}" if v.salary_threshold else "None",
        "educationRequired": v.education_required or "None specified",
        "languageRequirement": v.language_requirement or "None",
        "requirements": [r.name for r in v.requirements],
    }


def build_eligibility_prompt(profile: ApplicantProfile, candidates: list[VisaType], today: date) -> str:
    today_str = today.strftime("%A, %B %d, %Y")
    visas = json.dumps([visa_for_prompt(v) for v in candidates], indent=2)
    return f"""CURRENT DATE: {today_str}

Analyze the following user profile for visa eligibility and recommend the best pathways.
Use the current date when considering any time-sensitive requirements or policy changes.

User Profile:
- Current Country: {profile.current_country}
- Target Countries: {", ".join(profile.target_countries)}
- Profession: {profile.profession}
- Years of Experience: {profile.years_experience}
- Education Level: {profile.education}
- Languages Spoken: {", ".join(profile.languages)}
- Annual Salary: ${_fmt_money(profile.salary)} USD

Available Visa Types (use the exact 'code' field when referencing):
{visas}

IMPORTANT:
- Use the exact 'code' value from the visa types above in visaTypeCode
- Return at most {MAX_PATHWAYS} pathways, ranked by overall fit for this user's profile
- eligibilityScore and successProbability are numbers from 0 to 100
- Be realistic about eligibility scores based on the user's qualifications
- Consider processing time, cost, and success rate in your assessment
- Provide specific, actionable next steps
- Consider any recent policy changes or updates as of {today_str}"""


def rank_pathways(pathways: list[OraclePathway], candidate_codes: set[str]) -> list[PathwayAssessment]:
    """Validate codes against the candidates, then derive dense ranks from scores."""
    kept: list[OraclePathway] = []
    seen: set[str] = set()
    for p in pathways:
        if p.visaTypeCode not in candidate_codes:
            logger.warning("Dropping pathway for unknown visa code '%s'", p.visaTypeCode)
            continue
        if p.visaTypeCode in seen:
            logger.warning("Dropping duplicate pathway for visa code '%s'", p.visaTypeCode)
            continue
        seen.add(p.visaTypeCode)
        kept.append(p)

    # sorted() is stable: equal scores keep the oracle's order
    ordered = sorted(kept, key=lambda p: p.eligibilityScore, reverse=True)[:MAX_PATHWAYS]
    return [
        PathwayAssessment(
            visa_type_code=p.visaTypeCode,
            eligibility_score=p.eligibilityScore,
            success_probability=p.successProbability,
            estimated_processing_time=p.estimatedProcessingTime,
            total_cost_estimate=p.totalCostEstimate,
            reasoning=p.reasoning,
            next_steps=list(p.nextSteps),
            risk_factors=list(p.riskFactors),
            recommendation_rank=rank,
        )
        for rank, p in enumerate(ordered, start=1)
    ]


class EligibilityScorer:
    def __init__(self, oracle, temperature: float = 0.3, today: Callable[[], date] = _today):
        self.oracle = oracle
        self.temperature = temperature
        self.today = today

    async def score(self, profile: ApplicantProfile, candidates: list[VisaType]) -> ScoringResult:
        if not candidates:
            raise ValidationError("No candidate visa types to score against")

        prompt = build_eligibility_prompt(profile, candidates, self.today())
        output = await self.oracle.generate_structured(
            prompt,
            EligibilityOracleOutput,
            system=ELIGIBILITY_SYSTEM_PROMPT,
            temperature=self.temperature,
        )

        assessments = rank_pathways(output.pathways, {v.code.lower() for v in candidates})
        top_code = assessments[0].visa_type_code if assessments else None
        claimed = (output.topRecommendation or "").strip().lower()
        if claimed and claimed != top_code:
            logger.info("Oracle top recommendation '%s' replaced by rank-1 code '%s'", claimed, top_code)

        logger.info(
            "Scored %d candidates: %d of %d pathways kept",
            len(candidates), len(assessments), len(output.pathways),
        )
        return ScoringResult(
            assessments=assessments,
            overall_assessment=output.overallAssessment,
            top_recommendation_code=top_code,
            candidates_analyzed=len(candidates),
        )
