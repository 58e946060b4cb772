from datetime import datetime, timedelta, timezone

import pytest

from vendorwatch.models import (
    CrawlResult,
    ExtractionResponse,
    ScrapeResult,
    SearchResult,
    Vendor,
)
from vendorwatch.monitor import CycleContext, MonitorSettings
from vendorwatch.services.store import InMemoryStore

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeScraper:
    """Serves page text from a dict keyed by URL; unknown URLs fail."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        if url not in self.pages:
            return ScrapeResult(ok=False, error=f"HTTP 404 for {url}")
        return ScrapeResult(ok=True, text=self.pages[url])


class FakeCrawler:
    def __init__(self, pages=("https://acme.com/terms", "https://acme.com/privacy")):
        self.pages = list(pages)
        self.calls = []

    def crawl_site(self, url, limit, max_depth):
        self.calls.append((url, limit, max_depth))
        text = "\n\n".join(f"--- Page: {p} ---\ncontent of {p}" for p in self.pages)
        return CrawlResult(ok=True, pages=self.pages, text=text)


class FakeSearch:
    def __init__(self, result=None):
        self.result = result or SearchResult(ok=True)
        self.queries = []

    def search_news(self, query):
        self.queries.append(query)
        return self.result


class FakeExtractor:
    """Returns canned facts per URL; other URLs give ok=False."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def extract(self, url):
        self.calls.append(url)
        facts = self.responses.get(url)
        if facts is None:
            return ExtractionResponse(ok=False, error="not found")
        return ExtractionResponse(ok=True, facts=facts)


class FakeNarrative:
    def __init__(self, analysis=None, error=None):
        self.analysis = analysis
        self.error = error
        self.calls = []

    def analyze(self, vendor_name, content, structured, previous_content=None):
        self.calls.append({"vendor_name": vendor_name, "previous_content": previous_content})
        if self.error is not None:
            raise self.error
        return self.analysis


class FakeNotifier:
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send(self, event):
        self.sent.append(event)
        return self.ok


def make_vendor(vid="acme", name="Acme", website="acme.com", offset_days=0):
    return Vendor(id=vid, name=name, website=website, created_at=T0 + timedelta(days=offset_days))


@pytest.fixture
def make_context():
    """Build a CycleContext over fakes; keyword arguments replace collaborators."""
    def _make(vendors=None, settings=None, **collaborators):
        values = dict(
            settings=settings or MonitorSettings(research_mode="basic"),
            store=InMemoryStore(vendors or []),
            scraper=FakeScraper(),
            crawler=None,
            search=None,
            extractor=FakeExtractor(),
            narrative=None,
            notifier=FakeNotifier(),
        )
        values.update(collaborators)
        return CycleContext(**values)
    return _make
