# vendorwatch/agents/relevance.py
"""
Rule-based URL filtering for structured extraction.

Only official, on-domain legal / policy / pricing / security / SLA pages are
worth sending to the document extractor. Blog posts, press releases and other
marketing pages are rejected even when their path also mentions a legal
keyword (e.g. blog.vendor.com/terms).

APIs:
- normalize_url(url) / get_domain(url)
- get_root_domain(hostname)
- is_on_vendor_domain(vendor_domain, url)
- is_relevant_vendor_url(vendor_domain, url)
"""

from __future__ import annotations
import logging
from typing import List
from urllib.parse import urlparse

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PATH_ALLOW = [
    "terms",
    "tos",
    "legal",
    "privacy",
    "policy",
    "security",
    "trust",
    "sla",
    "uptime",
    "compliance",
    "dpa",
    "data-processing",
    "subprocessor",
    "pricing",
    "fees",
    "billing",
    "support",
]

PATH_BLOCK = [
    "blog",
    "news",
    "press",
    "media",
    "events",
    "community",
    "forum",
    "careers",
    "about",
    "investors",
    "stories",
    "case-study",
    "case-studies",
]

TWO_PART_TLDS = {"co.uk", "com.au", "co.nz", "co.jp", "com.br"}


def normalize_url(url: str) -> str:
    """Ensure a vendor website has a scheme (defaults to https)."""
    trimmed = (url or "").strip()
    if not trimmed:
        return ""
    if trimmed.startswith(("http://", "https://")):
        return trimmed
    return f"https://{trimmed}"


def get_domain(url: str) -> str:
    u = normalize_url(url)
    if not u:
        return ""
    try:
        host = (urlparse(u).hostname or "").lower()
    except ValueError:
        return u
    return host[4:] if host.startswith("www.") else host


def get_root_domain(hostname: str) -> str:
    """
    Registrable root of a hostname: strips www. and keeps three labels for
    known two-part public suffixes (shop.acme.co.uk -> acme.co.uk).
    """
    stripped = (hostname or "").strip().lower()
    if stripped.startswith("www."):
        stripped = stripped[4:]
    parts = [p for p in stripped.split(".") if p]
    if len(parts) >= 3:
        if ".".join(parts[-2:]) in TWO_PART_TLDS:
            return ".".join(parts[-3:])
        return ".".join(parts[-2:])
    return ".".join(parts)


def _vendor_host(vendor_domain: str) -> str:
    # accept "stripe.com", "https://stripe.com/" or "www.stripe.com"
    value = vendor_domain.strip().lower()
    if "://" in value:
        return urlparse(value).hostname or ""
    return value.split("/")[0]


def is_on_vendor_domain(vendor_domain: str, url: str) -> bool:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    root = get_root_domain(_vendor_host(vendor_domain))
    if not root or get_root_domain(host) != root:
        return False
    return host == root or host == f"www.{root}" or host.endswith(f".{root}")


def _has_blocked_keyword(url: str, root: str) -> bool:
    # subdomain labels count (blog.vendor.com), the vendor's own root does not
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    sub = host[: -len(root)] if root and host.endswith(root) else host
    target = f"{sub}{parsed.path}?{parsed.query}".lower()
    return any(kw in target for kw in PATH_BLOCK)


def _has_allowed_keyword(url: str) -> bool:
    path = (urlparse(url).path or "").lower()
    return any(kw in path for kw in PATH_ALLOW)


def is_relevant_vendor_url(vendor_domain: str, url: str) -> bool:
    """
    True only if url is on the vendor's domain, carries no blocked keyword and
    its path has at least one allowed legal/commercial keyword.
    """
    if not vendor_domain or not vendor_domain.strip() or not url or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    if not is_on_vendor_domain(vendor_domain, url):
        return False
    if _has_blocked_keyword(url, get_root_domain(_vendor_host(vendor_domain))):
        return False
    return _has_allowed_keyword(url)


def filter_relevant_urls(vendor_domain: str, urls: List[str]) -> List[str]:
    kept = [u for u in urls if is_relevant_vendor_url(vendor_domain, u)]
    logger.debug("Relevance filter: kept %d of %d candidate URLs for %s", len(kept), len(urls), vendor_domain)
    return kept
