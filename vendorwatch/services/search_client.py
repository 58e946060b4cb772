# vendorwatch/services/search_client.py
"""
External risk-signal search via the Tavily Search API.

TavilySearch.search_news(query) -> SearchResult
build_risk_query(vendor_name) -> str

Results become ExternalSource records (source="news" for the news topic) and a
text block ("[NEWS] <title>\\n<content>" per result) that the monitor appends
to the fingerprinted content.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import httpx
from dateutil import parser as dateparser

from vendorwatch.config import cfg
from vendorwatch.models import ExternalSource, SearchResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
SEARCH_TIMEOUT = 20.0
MAX_RESULTS = 5
NEWS_DAYS = 7

RISK_TERMS = ("breach", "security", "layoffs", "incident", "outage", "lawsuit")


def build_risk_query(vendor_name: str) -> str:
    return f"\"{vendor_name}\" ({' OR '.join(RISK_TERMS)})"


def _iso_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return dateparser.parse(value).isoformat()
    except (ValueError, OverflowError):
        return value


def _parse_results(data: Dict[str, Any], source: str) -> List[ExternalSource]:
    out: List[ExternalSource] = []
    seen = set()
    for item in data.get("results", []) if isinstance(data, dict) else []:
        url = item.get("url")
        if not url or url in seen:
            continue
        seen.add(url)
        out.append(ExternalSource(
            url=url,
            title=item.get("title") or None,
            snippet=item.get("content") or None,
            published=_iso_date(item.get("published_date")),
            source=source,
        ))
    return out


def _render(sources: List[ExternalSource]) -> str:
    parts = []
    for s in sources:
        body = s.snippet or s.title or ""
        if body:
            parts.append(f"[{s.source.upper()}] {s.title or 'Untitled'}\n{body}")
    return "\n\n---\n\n".join(parts)


class TavilySearch:
    """Implements the Search interface."""

    def __init__(self, api_key: Optional[str] = None, topic: str = "news",
                 max_results: int = MAX_RESULTS, client: Optional[httpx.Client] = None):
        self.api_key = api_key or cfg.TAVILY_API_KEY
        self.topic = topic
        self.max_results = max_results
        self.client = client or httpx.Client(timeout=SEARCH_TIMEOUT)

    def search_news(self, query: str) -> SearchResult:
        if not self.api_key:
            return SearchResult(ok=False, error="TAVILY_API_KEY not configured")
        payload: Dict[str, Any] = {
            "api_key": self.api_key,
            "query": query,
            "max_results": self.max_results,
            "topic": self.topic,
        }
        if self.topic == "news":
            payload["days"] = NEWS_DAYS
        try:
            resp = self.client.post(TAVILY_SEARCH_URL, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.exception("Tavily search failed for query=%s : %s", query, e)
            return SearchResult(ok=False, error=str(e) or type(e).__name__)

        source = "news" if self.topic == "news" else "web"
        sources = _parse_results(data, source)
        logger.info("[search] %d results for %s", len(sources), query)
        return SearchResult(ok=True, sources=sources, text=_render(sources))

    def close(self):
        self.client.close()
