# vendorwatch/services/web_client.py
"""
HTTP scraper and bounded same-domain crawler (httpx + BeautifulSoup).

HttpScraper.fetch(url) -> ScrapeResult
    One page, rendered to plain text with links kept as [text](url) so the
    extraction step can still see document links after fingerprinting.

HttpScraper.crawl_site(url, limit=3, max_depth=2) -> CrawlResult
    Breadth-first crawl restricted to the start URL's registrable domain.
    Each page's text is prefixed with "--- Page: <url> ---".

Every request goes through the per-domain rate limiter. Failures are returned
as ok=False results, never raised.
"""
from __future__ import annotations
import logging
from collections import deque
from typing import List, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from vendorwatch.agents.relevance import get_domain, is_on_vendor_domain
from vendorwatch.models import CrawlResult, ScrapeResult
from vendorwatch.services.rate_limiter import wait_for_slot

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

HTTP_TIMEOUT = 20.0
FETCH_RETRIES = 2
MAX_TEXT_CHARS = 200_000
USER_AGENT = ("VendorWatch/1.0 Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36")

PER_DOMAIN_MAX = 5
PER_DOMAIN_WINDOW = 60
PER_DOMAIN_MIN_INTERVAL = 0.6

_STRIP_TAGS = ["script", "style", "noscript", "svg", "iframe", "template"]


def html_to_text(html: str, base_url: str) -> str:
    """Visible page text, one block per line, anchors rendered as [text](absolute-url)."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_STRIP_TAGS):
        tag.decompose()
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        label = a.get_text(" ", strip=True)
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        a.replace_with(f"[{label}]({urljoin(base_url, href)})")
    text = soup.get_text("\n")
    lines = [" ".join(line.split()) for line in text.splitlines()]
    text = "\n".join(line for line in lines if line)
    return text[:MAX_TEXT_CHARS]


def _links_from_html(html: str, base_url: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    out = []
    for a in soup.find_all("a", href=True):
        url = urljoin(base_url, a["href"].strip())
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            out.append(parsed._replace(fragment="").geturl())
    return out


class HttpScraper:
    """Implements the Scraper and Crawler interfaces on top of httpx."""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = HTTP_TIMEOUT,
                 rate_limit: bool = True):
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
        self.rate_limit = rate_limit

    def _get(self, url: str) -> httpx.Response:
        if self.rate_limit:
            wait_for_slot(get_domain(url), PER_DOMAIN_MAX, PER_DOMAIN_WINDOW, PER_DOMAIN_MIN_INTERVAL)
        last_err: Optional[Exception] = None
        for attempt in range(FETCH_RETRIES + 1):
            try:
                resp = self.client.get(url)
                resp.raise_for_status()
                return resp
            except httpx.HTTPStatusError:
                raise
            except httpx.HTTPError as e:
                last_err = e
                logger.debug("fetch attempt %s failed for %s: %s", attempt, url, e)
        raise last_err  # type: ignore[misc]

    def _fetch_html(self, url: str) -> Tuple[str, str]:
        resp = self._get(url)
        ctype = resp.headers.get("content-type", "").lower()
        if ctype and "html" not in ctype and "text/plain" not in ctype:
            raise ValueError(f"unsupported content-type {ctype}")
        return str(resp.url), resp.text

    def fetch(self, url: str) -> ScrapeResult:
        try:
            final_url, html = self._fetch_html(url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Scrape failed for %s: %s", url, e)
            return ScrapeResult(ok=False, error=str(e) or type(e).__name__)
        return ScrapeResult(ok=True, text=html_to_text(html, final_url), html=html)

    def crawl_site(self, url: str, limit: int = 3, max_depth: int = 2) -> CrawlResult:
        domain = get_domain(url)
        queue = deque([(url, 0)])
        seen: Set[str] = {url}
        pages: List[str] = []
        parts: List[str] = []

        while queue and len(pages) < limit:
            current, depth = queue.popleft()
            try:
                final_url, html = self._fetch_html(current)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("Crawl skipped %s: %s", current, e)
                continue
            pages.append(final_url)
            text = html_to_text(html, final_url)
            if text.strip():
                parts.append(f"--- Page: {final_url} ---\n{text}")
            if depth >= max_depth:
                continue
            for link in _links_from_html(html, final_url):
                if link not in seen and is_on_vendor_domain(domain, link):
                    seen.add(link)
                    queue.append((link, depth + 1))

        if not pages:
            return CrawlResult(ok=False, error=f"no pages fetched from {url}")
        logger.info("[crawl] %d pages from %s", len(pages), domain)
        return CrawlResult(ok=True, pages=pages, text="\n\n".join(parts))

    def close(self):
        self.client.close()
