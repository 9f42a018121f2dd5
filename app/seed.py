"""
Seed the visa_types collection with the starter catalog.

Usage: python -m app.seed

Upserts by visa code, so it is safe to run repeatedly; fields of existing
entries are refreshed from this file.
"""

import asyncio
import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import UpdateOne

from app.config import get_settings
from app.db import ensure_indexes

logger = logging.getLogger(__name__)


def _req(name: str, priority: str = "critical") -> dict:
    return {"name": name, "priority": priority}


def _visa(code, name, country, category, description, times, fees, currency, success_rate,
          salary_threshold=None, education_required=None, language_requirement="none", requirements=()):
    min_days, avg_days, max_days = times
    application_fee, legal_fee = fees
    return {
        "code": code,
        "name": name,
        "country": country,
        "category": category,
        "description": description,
        "processing_time_min": min_days,
        "processing_time_avg": avg_days,
        "processing_time_max": max_days,
        "application_fee": application_fee,
        "legal_fee": legal_fee,
        "currency": currency,
        "success_rate": success_rate,
        "salary_threshold": salary_threshold,
        "education_required": education_required,
        "language_requirement": language_requirement,
        "requirements": list(requirements),
        "is_active": True,
    }


VISA_TYPES = [
    # Germany
    _visa(
        "de-blue-card", "EU Blue Card", "DE", "work",
        "EU Blue Card for highly qualified workers in Germany. Requires a recognized university "
        "degree and a job offer with minimum salary threshold.",
        (30, 60, 90), (100, 2000), "EUR", 85,
        salary_threshold=56400, education_required="bachelor",
        requirements=[
            _req("University degree"),
            _req("Job offer meeting salary threshold"),
            _req("Health insurance"),
            _req("Valid passport"),
            _req("German language skills (optional but beneficial)", "nice-to-have"),
        ],
    ),
    _visa(
        "de-skilled-worker", "Skilled Worker Visa", "DE", "work",
        "For qualified workers with recognized professional training or university degree and a "
        "concrete job offer.",
        (60, 90, 120), (75, 1500), "EUR", 78,
        salary_threshold=45000, education_required="bachelor", language_requirement="basic",
        requirements=[
            _req("Recognized qualification"),
            _req("Job offer"),
            _req("German language skills (B1)", "important"),
            _req("Health insurance"),
        ],
    ),
    _visa(
        "de-freelancer", "Germany Freelancer Visa", "DE", "digital-nomad",
        "Self-employment visa for freelancers and independent contractors in Germany.",
        (60, 90, 180), (100, 2000), "EUR", 70,
        language_requirement="basic",
        requirements=[
            _req("Business plan"),
            _req("Client letters of intent from German companies"),
            _req("Sufficient funds"),
            _req("Health insurance"),
            _req("Professional qualifications", "important"),
        ],
    ),
    _visa(
        "de-student", "Germany Student Visa", "DE", "study",
        "Visa for full-time university studies at a German institution.",
        (30, 60, 90), (75, 500), "EUR", 90,
        education_required="high-school", language_requirement="intermediate",
        requirements=[
            _req("University admission letter"),
            _req("Proof of financial means (EUR 11,208/year)"),
            _req("Health insurance"),
            _req("Language proficiency (German or English)"),
        ],
    ),
    # Netherlands
    _visa(
        "nl-hsm", "Highly Skilled Migrant", "NL", "work",
        "For highly skilled workers with a recognized sponsor employer in Netherlands. One of the "
        "fastest work visa processes in EU.",
        (14, 30, 60), (320, 1500), "EUR", 92,
        salary_threshold=46107,
        requirements=[
            _req("Job offer from recognized sponsor"),
            _req("Salary meeting threshold"),
            _req("Valid passport"),
            _req("Tuberculosis test (some nationalities)", "important"),
        ],
    ),
    _visa(
        "nl-orientation-visa", "Orientation Year Visa", "NL", "work",
        "For recent graduates of Dutch universities or top foreign universities to search for work "
        "in Netherlands.",
        (21, 45, 90), (192, 800), "EUR", 88,
        education_required="master",
        requirements=[
            _req("Recent graduation (within 3 years)"),
            _req("Degree from top 200 university or Dutch uni"),
            _req("Valid passport"),
        ],
    ),
    _visa(
        "nl-startup", "Netherlands Startup Visa", "NL", "entrepreneur",
        "One-year visa to develop innovative products or services with a Dutch facilitator.",
        (30, 60, 90), (350, 2000), "EUR", 75,
        requirements=[
            _req("Signed agreement with facilitator"),
            _req("Innovative product or service"),
            _req("Step-by-step plan for startup phase"),
            _req("Sufficient financial means"),
        ],
    ),
    # United Kingdom
    _visa(
        "uk-skilled-worker", "Skilled Worker Visa", "UK", "work",
        "UK main work visa for skilled workers with a job offer from a licensed sponsor employer.",
        (21, 42, 84), (719, 3000), "GBP", 80,
        salary_threshold=38700, education_required="bachelor", language_requirement="intermediate",
        requirements=[
            _req("Certificate of Sponsorship from licensed employer"),
            _req("Job at required skill level (RQF 3+)"),
            _req("English language proficiency (B1)"),
            _req("Salary meeting threshold"),
            _req("Immigration Health Surcharge payment"),
        ],
    ),
    _visa(
        "uk-global-talent", "Global Talent Visa", "UK", "work",
        "For leaders and emerging talent in academia, arts, digital technology, or research.",
        (28, 35, 56), (623, 2500), "GBP", 75,
        requirements=[
            _req("Endorsement from approved body"),
            _req("Evidence of exceptional talent or promise"),
            _req("Valid passport"),
        ],
    ),
    _visa(
        "uk-student", "UK Student Visa", "UK", "study",
        "Visa for studies at UK higher education institutions.",
        (21, 21, 42), (490, 800), "GBP", 88,
        education_required="high-school", language_requirement="intermediate",
        requirements=[
            _req("Confirmation of Acceptance for Studies (CAS)"),
            _req("English language proficiency"),
            _req("Financial evidence"),
            _req("Immigration Health Surcharge"),
        ],
    ),
    _visa(
        "uk-innovator", "UK Innovator Founder Visa", "UK", "entrepreneur",
        "For experienced businesspeople seeking to establish an innovative business in UK.",
        (21, 35, 56), (1486, 4000), "GBP", 65,
        language_requirement="intermediate",
        requirements=[
            _req("Endorsement from approved body"),
            _req("Innovative, viable, and scalable business idea"),
            _req("English language proficiency (B2)"),
            _req("Minimum investment funds", "important"),
        ],
    ),
    # United States
    _visa(
        "us-h1b", "H-1B Specialty Occupation", "US", "work",
        "For specialty occupation workers in fields requiring theoretical and practical application "
        "of specialized knowledge.",
        # low success rate reflects the lottery
        (90, 180, 270), (460, 5000), "USD", 35,
        salary_threshold=60000, education_required="bachelor", language_requirement="advanced",
        requirements=[
            _req("Bachelor's degree or equivalent"),
            _req("Job offer in specialty occupation"),
            _req("Selected in H-1B lottery"),
            _req("Labor Condition Application (LCA)"),
        ],
    ),
    _visa(
        "us-o1", "O-1 Extraordinary Ability", "US", "work",
        "For individuals with extraordinary ability in sciences, arts, education, business, or athletics.",
        (14, 45, 90), (460, 6000), "USD", 70,
        requirements=[
            _req("Evidence of extraordinary ability"),
            _req("Coming to work in area of expertise"),
            _req("Advisory opinion from peer group", "important"),
        ],
    ),
    _visa(
        "us-l1", "L-1 Intracompany Transfer", "US", "work",
        "For managers, executives, or specialized knowledge workers transferring within the same company.",
        (30, 90, 180), (460, 4500), "USD", 82,
        requirements=[
            _req("Employed by company abroad for 1+ year"),
            _req("Manager/executive or specialized knowledge"),
            _req("US entity is related company"),
        ],
    ),
    # Canada
    _visa(
        "ca-express-entry", "Express Entry", "CA", "work",
        "Points-based immigration system for skilled workers. Fastest pathway to Canadian permanent residence.",
        (180, 240, 365), (1365, 3000), "CAD", 78,
        education_required="bachelor", language_requirement="advanced",
        requirements=[
            _req("Minimum CRS score (varies by draw)"),
            _req("Language test (IELTS/CELPIP)"),
            _req("Education credential assessment (ECA)"),
            _req("Proof of funds", "important"),
            _req("Work experience (1+ year skilled work)"),
        ],
    ),
    _visa(
        "ca-provincial-nominee", "Provincial Nominee Program", "CA", "work",
        "Provincial nomination for skilled workers to settle in specific Canadian provinces.",
        (120, 300, 545), (1365, 3500), "CAD", 72,
        education_required="bachelor", language_requirement="intermediate",
        requirements=[
            _req("Provincial nomination"),
            _req("Meet provincial criteria"),
            _req("Language test"),
            _req("Intent to live in nominating province"),
        ],
    ),
    _visa(
        "ca-global-talent-stream", "Global Talent Stream", "CA", "work",
        "Fast-track work permit for highly skilled tech workers and talent in unique occupations.",
        (10, 14, 28), (155, 2000), "CAD", 88,
        requirements=[
            _req("Job offer from designated employer"),
            _req("In-demand occupation or unique talent"),
            _req("Labour Market Benefits Plan"),
        ],
    ),
    # Australia
    _visa(
        "au-skilled-independent", "Skilled Independent Visa (189)", "AU", "work",
        "Points-based visa for skilled workers who don't need employer or state nomination.",
        (180, 365, 540), (4640, 4000), "AUD", 65,
        education_required="bachelor", language_requirement="advanced",
        requirements=[
            _req("Occupation on skilled occupation list"),
            _req("Skills assessment"),
            _req("Minimum 65 points"),
            _req("English proficiency (IELTS 6.0+)"),
            _req("Under 45 years old"),
        ],
    ),
    _visa(
        "au-employer-sponsored", "Employer Nomination Scheme (186)", "AU", "work",
        "Permanent residence visa for skilled workers nominated by an Australian employer.",
        (120, 240, 365), (4640, 3500), "AUD", 82,
        salary_threshold=70000, education_required="bachelor", language_requirement="intermediate",
        requirements=[
            _req("Employer nomination"),
            _req("Skills assessment"),
            _req("3+ years relevant work experience"),
            _req("English proficiency"),
        ],
    ),
    # Digital nomad
    _visa(
        "pt-d7", "Portugal D7 Visa", "PT", "digital-nomad",
        "Passive income or remote work visa for Portugal. Popular for digital nomads and retirees.",
        # threshold is the yearly equivalent of the monthly minimum income
        (60, 90, 120), (90, 1200), "EUR", 85,
        salary_threshold=9120,
        requirements=[
            _req("Proof of regular passive income"),
            _req("Health insurance"),
            _req("Clean criminal record"),
            _req("Portuguese accommodation"),
        ],
    ),
    _visa(
        "es-digital-nomad", "Spain Digital Nomad Visa", "ES", "digital-nomad",
        "Digital nomad visa for remote workers employed by foreign companies.",
        (30, 45, 90), (80, 1500), "EUR", 82,
        salary_threshold=27000,
        requirements=[
            _req("Remote work for non-Spanish company"),
            _req("3+ years work experience or degree"),
            _req("1+ year with current employer", "important"),
            _req("Health insurance"),
        ],
    ),
]


async def seed_visa_types(db) -> int:
    """Upsert the starter catalog. Returns the number of newly inserted visa types."""
    now = datetime.now(timezone.utc)
    ops = [
        UpdateOne(
            {"code": v["code"]},
            {"$set": {**v, "updated_at": now}, "$setOnInsert": {"created_at": now}},
            upsert=True,
        )
        for v in VISA_TYPES
    ]
    result = await db.visa_types.bulk_write(ops)
    return result.upserted_count


async def main():
    settings = get_settings()
    client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
    try:
        db = client[settings.db_name]
        await ensure_indexes(db)
        inserted = await seed_visa_types(db)
        logger.info("Seeded %d visa types (%d new)", len(VISA_TYPES), inserted)
    finally:
        client.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
