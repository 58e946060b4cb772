# vendorwatch/agents/hallucination_guard.py
"""
Detect likely hallucination when the document extractor returns rich legal
output for a page that has no legal content at all (e.g. a marketing
homepage). Such results are discarded and the pipeline carries on as if
extraction had found nothing.
"""

from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import urlparse

from vendorwatch.models import StructuredData

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MIN_SUSPICIOUS_FIELDS = 4
SCAN_CHARS = 12_000

LEGAL_KEYWORDS = [
    "liability",
    "indemnif",
    "terms of service",
    "terms and conditions",
    "agreement",
    "privacy policy",
    "subscription",
    "governing law",
    "arbitration",
    "limitation of liability",
    "data retention",
    "sla",
    "uptime",
    "gdpr",
    "soc 2",
    "iso 27001",
]


def is_homepage(url: str) -> bool:
    try:
        path = urlparse(url).path.rstrip("/")
    except ValueError:
        return False
    return path == ""


def has_legal_content(text: str) -> bool:
    sample = (text or "")[:SCAN_CHARS].lower()
    return any(kw in sample for kw in LEGAL_KEYWORDS)


def looks_hallucinated(data: Optional[StructuredData], source_url: str, scraped_text: str) -> bool:
    """
    True when data is implausibly rich for its source: at least 4 populated
    fields, extracted from the bare site root, with no legal keyword in the
    first 12k characters of the scraped page.
    """
    if data is None:
        return False
    field_count = len(data.populated_fields())
    if field_count < MIN_SUSPICIOUS_FIELDS:
        return False
    if not is_homepage(source_url):
        return False
    if has_legal_content(scraped_text):
        return False
    logger.warning("Rejecting %d-field extraction from homepage %s: no legal content on page", field_count, source_url)
    return True
