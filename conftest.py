"""
Shared fixtures: an in-memory Mongo (mongomock_motor), the starter visa
catalog, and a scripted oracle standing in for OpenRouter.
"""

import asyncio
import copy

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.config import get_settings
from app.main import app
from app.seed import VISA_TYPES

TEST_DB = "visapath_test"


class FakeOracle:
    """Returns canned payloads in order; an Exception in the script is raised instead."""

    configured = True

    def __init__(self, responses=(), chunks=(), stream_error=None):
        self.responses = list(responses)
        self.chunks = list(chunks)
        self.stream_error = stream_error
        self.calls = []
        self.stream_calls = []

    async def generate_structured(self, prompt, schema, *, system=None, temperature=None, model=None, attachments=None):
        self.calls.append({
            "prompt": prompt,
            "schema": schema,
            "system": system,
            "temperature": temperature,
            "model": model,
            "attachments": attachments,
        })
        if not self.responses:
            raise AssertionError(f"unexpected oracle call for {schema.__name__}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return schema.model_validate(response)

    async def generate_stream(self, messages, system_prompt, *, temperature=None):
        self.stream_calls.append({"messages": messages, "system_prompt": system_prompt})
        if self.stream_error is not None:
            raise self.stream_error
        for chunk in self.chunks:
            yield chunk


def pathway(code, score, **overrides):
    data = {
        "visaTypeCode": code,
        "eligibilityScore": score,
        "successProbability": 70,
        "estimatedProcessingTime": 60,
        "totalCostEstimate": 2500,
        "reasoning": f"Reasoning for {code}",
        "nextSteps": ["Gather documents"],
        "riskFactors": [],
    }
    data.update(overrides)
    return data


def eligibility_output(*pathways, top=""):
    return {"pathways": list(pathways), "overallAssessment": "Strong candidate for EU work visas.", "topRecommendation": top}


def research_output(summary="Blue Card summary", confidence=85):
    return {
        "officialRequirements": [
            {"name": "University degree", "description": "Recognized degree", "priority": "critical", "documentNeeded": True},
        ],
        "currentFees": {"applicationFee": 100, "currency": "EUR", "additionalFees": [], "totalEstimate": 100, "lastUpdated": "2026-10"},
        "processingTimes": {"standard": {"minDays": 30, "maxDays": 90, "avgDays": 60}},
        "eligibilityCriteria": {"minimumSalary": 48300, "salaryCurrency": "EUR", "additionalCriteria": []},
        "applicationSteps": [
            {"step": 1, "title": "Book appointment", "description": "At the embassy", "estimatedDays": 14, "onlineAvailable": True},
        ],
        "recentChanges": ["Salary threshold lowered for shortage occupations"],
        "sources": [{"title": "Make it in Germany", "url": "https://www.make-it-in-germany.com", "type": "government"}],
        "aiSummary": summary,
        "confidenceScore": confidence,
    }


def sample_profile(**overrides):
    data = {
        "current_country": "US",
        "target_countries": ["DE", "NL"],
        "profession": "Software Engineer",
        "years_experience": 5,
        "education": "master",
        "languages": ["English"],
        "salary": 120000,
    }
    data.update(overrides)
    return data


@pytest.fixture
def mongo_client():
    return AsyncMongoMockClient()


@pytest.fixture
def db(mongo_client):
    database = mongo_client[TEST_DB]
    asyncio.run(database.visa_types.insert_many(copy.deepcopy(VISA_TYPES)))
    return database


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def client(mongo_client, db, oracle):
    """TestClient without the lifespan; app.state points at mongomock and the fake oracle."""
    app.state.mongo_client = mongo_client
    app.state.db_name = TEST_DB
    app.state.settings = get_settings()
    app.state.oracle = oracle
    app.state.research_oracle = oracle
    return TestClient(app, raise_server_exceptions=False)
