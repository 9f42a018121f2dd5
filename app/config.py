"""
Runtime configuration read from the environment (and an optional .env file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "visapath"

    openrouter_api_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "anthropic/claude-sonnet-4.5"
    openrouter_research_model: str = "google/gemini-2.5-pro"
    openrouter_document_model: str = "google/gemini-2.5-flash"
    oracle_timeout_seconds: float = 120.0

    eligibility_temperature: float = 0.3
    chat_temperature: float = 0.7

    research_ttl_days: int = 7
    research_web_search: bool = True

    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    jwt_secret: str = "dev_secret_change_me"
    jwt_alg: str = "HS256"
    log_level: str = "INFO"


def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    return Settings(
        mongo_url=os.getenv("MONGO_URL", "mongodb://localhost:27017"),
        db_name=os.getenv("DB_NAME", "visapath"),
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
        # OpenRouter expects ids like "anthropic/claude-sonnet-4.5"; the "openrouter/" prefix is litellm-only
        openrouter_model=os.getenv("OPENROUTER_MODEL", "anthropic/claude-sonnet-4.5").removeprefix("openrouter/"),
        openrouter_research_model=os.getenv("OPENROUTER_RESEARCH_MODEL", "google/gemini-2.5-pro").removeprefix("openrouter/"),
        openrouter_document_model=os.getenv("OPENROUTER_DOCUMENT_MODEL", "google/gemini-2.5-flash").removeprefix("openrouter/"),
        oracle_timeout_seconds=float(os.getenv("ORACLE_TIMEOUT_SECONDS", "120")),
        eligibility_temperature=float(os.getenv("ELIGIBILITY_TEMPERATURE", "0.3")),
        chat_temperature=float(os.getenv("CHAT_TEMPERATURE", "0.7")),
        research_ttl_days=int(os.getenv("RESEARCH_TTL_DAYS", "7")),
        research_web_search=_env_bool("RESEARCH_WEB_SEARCH", True),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        jwt_secret=os.getenv("JWT_SECRET", "dev_secret_change_me"),
        jwt_alg=os.getenv("JWT_ALG", "HS256"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
