"""
Web search tool for the visa research agent.

Uses Tavily (TAVILY_API_KEY) when set; otherwise DuckDuckGo (no API key).
DuckDuckGo often rate-limits or blocks requests, so Tavily is more reliable
for official fee tables, processing times and policy announcements.
"""

from __future__ import annotations

import logging
import os
import time

from crewai.tools import tool

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE_MSG = (
    "Web search is temporarily unavailable (rate limit or network error). "
    "Answer from general knowledge, lower the confidence score, and cite only "
    "official government immigration portals you are sure exist."
)


def _normalize(r: dict) -> dict:
    """Normalize search result to {title, body, href}."""
    title = (r.get("title") or "").strip()
    body = (r.get("body") or r.get("content") or "").strip()
    href = (r.get("href") or r.get("url") or "").strip()
    return {"title": title, "body": body, "href": href}


def _run_tavily(query: str, max_results: int = 8) -> list[dict] | None:
    api_key = os.getenv("TAVILY_API_KEY", "").strip()
    if not api_key:
        return None
    from tavily import TavilyClient

    try:
        client = TavilyClient(api_key=api_key)
        resp = client.search(
            query,
            max_results=max_results,
            search_depth="advanced",
        )
        raw = (resp or {}).get("results") or []
        return [_normalize(r) for r in raw]
    except Exception as e:
        logger.warning("Tavily search failed: %s", e)
        return None


def _run_duckduckgo(query: str, max_results: int = 8) -> list[dict] | None:
    from duckduckgo_search import DDGS

    delay = 1.5
    max_attempts = 3
    for attempt in range(max_attempts):
        try:
            if attempt > 0:
                time.sleep(delay * (attempt + 1))
            with DDGS() as ddgs:
                results = list(ddgs.text(query, max_results=max_results))
            return [_normalize(r) for r in (results or [])]
        except Exception as e:
            logger.warning("DuckDuckGo search attempt %d failed: %s", attempt + 1, e)
    return None


def run_search(query: str, max_results: int = 8) -> list[dict] | None:
    """Run search via Tavily (if key set) or DuckDuckGo. Returns None on failure."""
    normalized = _run_tavily(query, max_results)
    if normalized is not None:
        return normalized
    return _run_duckduckgo(query, max_results)


def format_results(results: list[dict]) -> str:
    if not results:
        return "No search results found."
    lines = []
    for i, r in enumerate(results, 1):
        title = (r.get("title") or "").strip()
        body = (r.get("body") or "").strip()
        href = (r.get("href") or "").strip()
        if title or body:
            lines.append(f"{i}. **{title}**\n   {body}\n   Source: {href}")
    return "\n\n".join(lines) if lines else "No search results found."


@tool("Web search for official visa information")
def web_search_visa(query: str) -> str:
    """
    Search the web for current visa information. Use it to find official
    requirements, application fees, processing times, salary thresholds and
    recent policy changes for a specific visa.

    Include the visa name, the country and the current year in the query
    (e.g. "EU Blue Card Germany salary threshold 2026"). Prefer results from
    government domains. Returns titles, snippets, and URLs.
    """
    results = run_search(query, max_results=8)
    if results is None:
        return SEARCH_UNAVAILABLE_MSG
    return format_results(results)
