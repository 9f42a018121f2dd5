"""
FastAPI dependency providers.

Long-lived handles (Mongo client, oracles, settings) are created once in the
application lifespan and kept on app.state; these functions wrap them in the
per-request service objects the routes use.
"""

from datetime import timedelta

from fastapi import Depends, Request

from app.ai.document_analyzer import DocumentAnalyzer
from app.ai.eligibility_scorer import EligibilityScorer
from app.ai.research_cache import ResearchCache
from app.config import Settings, get_settings
from app.db import get_db
from app.stores.catalog import VisaCatalog
from app.stores.chat import ChatStore
from app.stores.documents import DocumentStore
from app.stores.profiles import ProfileStore
from app.stores.sessions import AnalysisSessionStore


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_oracle(request: Request):
    oracle = getattr(request.app.state, "oracle", None)
    if oracle is None:
        raise RuntimeError("Oracle not initialised")
    return oracle


def get_research_oracle(request: Request):
    return getattr(request.app.state, "research_oracle", None) or get_oracle(request)


def get_catalog(db=Depends(get_db)) -> VisaCatalog:
    return VisaCatalog(db)


def get_session_store(db=Depends(get_db)) -> AnalysisSessionStore:
    return AnalysisSessionStore(db)


def get_chat_store(db=Depends(get_db)) -> ChatStore:
    return ChatStore(db)


def get_document_store(db=Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def get_profile_store(db=Depends(get_db)) -> ProfileStore:
    return ProfileStore(db)


def get_scorer(
    oracle=Depends(get_oracle),
    settings: Settings = Depends(get_app_settings),
) -> EligibilityScorer:
    return EligibilityScorer(oracle, temperature=settings.eligibility_temperature)


def get_research_cache(
    db=Depends(get_db),
    oracle=Depends(get_research_oracle),
    catalog: VisaCatalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
) -> ResearchCache:
    return ResearchCache(db, oracle, catalog=catalog, ttl=timedelta(days=settings.research_ttl_days))


def get_document_analyzer(
    oracle=Depends(get_oracle),
    settings: Settings = Depends(get_app_settings),
) -> DocumentAnalyzer:
    return DocumentAnalyzer(oracle, model=settings.openrouter_document_model)
