# vendorwatch/agents/extract.py
"""
vendorwatch/agents/extract.py

Purpose
-------
Find the vendor's official legal / commercial documents and turn the first
usable one into StructuredData.

Primary function:
    extract_structured_data(vendor_website, page_text, extractor, page_html=None)

Steps
-----
1. extract_document_links(): markdown/HTML links whose target looks like a
   legal page or a PDF, plus bare PDF URLs (deduped, max 3).
2. get_extraction_urls(): the links above + common legal paths on the vendor
   origin + the homepage as last resort (deduped, max 4).
3. Relevance filter against the vendor's domain.
4. Call the extractor for each candidate in order. The first result that
   survives normalization and the hallucination guard wins; later candidates
   are never called.

Output
------
ExtractionOutcome(data=StructuredData|None, source_url=..., tried=[...], rejected=[...])
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from vendorwatch.agents.hallucination_guard import looks_hallucinated
from vendorwatch.agents.relevance import filter_relevant_urls, get_domain, normalize_url
from vendorwatch.models import STRUCTURED_FIELDS, StructuredData

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Tunables
MAX_DOC_LINKS = 3
MAX_CANDIDATES = 4

COMMON_LEGAL_PATHS = ["/legal", "/terms", "/terms-of-service", "/privacy", "/tos", "/terms.html", "/legal.html"]

_MD_LINK_RE = re.compile(r"\[[^\]]*\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_PDF_RE = re.compile(r"https?://[^\s)\]\"'<>]+\.pdf", re.IGNORECASE)
_DOC_PATH_RE = re.compile(r"/terms|/privacy|/policy|/tos|/legal|/compliance", re.IGNORECASE)

# Per-fact keyword filter (optional, see filter_structured_data)
KEEP_KEYWORDS = [
    "price", "pricing", "fee", "charge", "billing", "subscription", "cost", "rate",
    "liability", "indemnify", "indemnification", "damages", "governing law", "arbitration",
    "termination", "renewal", "notice", "data", "encryption", "security", "retention",
    "breach", "incident", "residency", "subprocessors", "compliance", "gdpr", "soc", "iso",
    "sla", "uptime", "availability", "downtime", "support", "response time",
    "resolution time", "service level", "export", "portability", "cancellation",
    "contract length",
]

REMOVE_KEYWORDS = [
    "budget", "expenditure", "income statement", "internal report", "staffing",
    "payroll", "audit expense", "accounting summary", "government report", "annual financials",
]


@dataclass
class ExtractionOutcome:
    data: Optional[StructuredData] = None
    source_url: Optional[str] = None
    tried: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


def _is_document_url(href: str) -> bool:
    path = urlparse(href).path.lower()
    return path.endswith(".pdf") or bool(_DOC_PATH_RE.search(href))


def _resolve(raw: str, base_url: str) -> Optional[str]:
    raw = (raw or "").strip()
    if len(raw) < 5 or raw.startswith(("#", "mailto:", "tel:", "javascript:")):
        return None
    try:
        resolved = urljoin(base_url, raw)
        parsed = urlparse(resolved)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    return parsed._replace(fragment="").geturl()


def extract_document_links(text: str, base_url: str, html: Optional[str] = None) -> List[str]:
    """
    Pull document URLs (PDFs, terms, privacy, policy pages) out of page content.
    Accepts markdown-style text and, optionally, the raw HTML of the page.
    """
    base = normalize_url(base_url)
    if not base:
        return []
    links: List[str] = []
    seen = set()

    def _add(url: Optional[str], require_doc: bool = True):
        if not url or url in seen:
            return
        if require_doc and not _is_document_url(url):
            return
        seen.add(url)
        links.append(url)

    for m in _MD_LINK_RE.finditer(text or ""):
        _add(_resolve(m.group(1), base))

    if html:
        soup = BeautifulSoup(html, "html.parser")
        for a in soup.find_all("a", href=True):
            _add(_resolve(a.get("href", ""), base))

    for m in _PDF_RE.finditer(text or ""):
        _add(m.group(0), require_doc=False)

    return links[:MAX_DOC_LINKS]


def get_extraction_urls(doc_links: List[str], base_url: str) -> List[str]:
    """Document links first, then common legal paths on the origin, then the homepage."""
    seen = set()
    out: List[str] = []
    for u in doc_links:
        if u and u not in seen:
            seen.add(u)
            out.append(u)

    parsed = urlparse(normalize_url(base_url))
    if parsed.scheme and parsed.netloc:
        origin = f"{parsed.scheme}://{parsed.netloc}"
        for path in COMMON_LEGAL_PATHS:
            full = f"{origin}{path}"
            if full not in seen:
                seen.add(full)
                out.append(full)
        if f"{origin}/" not in seen:
            out.append(f"{origin}/")

    return out[:MAX_CANDIDATES]


def _as_fact_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]
    return []


def normalize_structured(raw: Optional[Dict[str, Any]]) -> Optional[StructuredData]:
    """
    Coerce raw extractor output to the fixed 13-field schema. Unknown keys are
    ignored, empty fields dropped. Returns None when nothing survives.
    """
    if not raw or not isinstance(raw, dict):
        return None
    values = {}
    for key in STRUCTURED_FIELDS:
        facts = _as_fact_list(raw.get(key))
        if facts:
            values[key] = facts
    if not values:
        return None
    return StructuredData(**values)


def _fact_is_relevant(entry: str) -> bool:
    lower = entry.lower()
    if any(kw in lower for kw in REMOVE_KEYWORDS):
        return False
    return any(kw in lower for kw in KEEP_KEYWORDS)


def filter_structured_data(data: Optional[StructuredData]) -> Optional[StructuredData]:
    """Drop facts that look like internal/government reporting noise rather than customer-facing terms."""
    if data is None:
        return None
    values = {}
    for key in data.populated_fields():
        kept = [f for f in data.facts(key) if _fact_is_relevant(f)]
        if kept:
            values[key] = kept
    return StructuredData(**values) if values else None


def extract_structured_data(vendor_website: str,
                            page_text: str,
                            extractor,
                            page_html: Optional[str] = None,
                            keyword_filter: bool = False) -> ExtractionOutcome:
    """
    Main entrypoint for structured extraction.

    extractor must expose extract(url) -> ExtractionResponse. Errors from the
    extractor are logged and the next candidate is tried.
    """
    outcome = ExtractionOutcome()
    base_url = normalize_url(vendor_website)
    doc_links = extract_document_links(page_text, base_url, html=page_html)
    candidates = get_extraction_urls(doc_links, base_url)
    relevant = filter_relevant_urls(get_domain(base_url), candidates)
    if not relevant:
        logger.info("[extract] no relevant candidate URLs for %s (candidates=%d)", base_url, len(candidates))
        return outcome

    for url in relevant:
        outcome.tried.append(url)
        try:
            resp = extractor.extract(url)
        except Exception as e:
            logger.exception("Extractor failed for %s: %s", url, e)
            continue
        if not resp or not resp.ok:
            logger.debug("Extractor returned nothing for %s", url)
            continue

        data = normalize_structured(resp.facts)
        if data is not None and keyword_filter:
            data = filter_structured_data(data)
        if data is None:
            logger.debug("Extractor output for %s empty after normalization", url)
            continue
        if looks_hallucinated(data, url, page_text):
            outcome.rejected.append(url)
            continue

        outcome.data = data
        outcome.source_url = url
        logger.info("[extract] %d fields from %s", len(data.populated_fields()), url)
        return outcome

    logger.info("[extract] no structured data for %s after %d candidates", base_url, len(outcome.tried))
    return outcome
