# vendorwatch/services/contracts.py
"""
Collaborator interfaces consumed by the monitoring pipeline.

The pipeline only depends on these Protocols; concrete implementations live
in web_client, search_client, doc_extractor, notifier, store and
agents.analyze. Tests substitute plain fakes.
"""

from __future__ import annotations
from typing import List, Optional, Protocol

from vendorwatch.models import (
    AlertMessage,
    CrawlResult,
    ExtractionResponse,
    NarrativeAnalysis,
    RiskEvent,
    ScrapeResult,
    SearchResult,
    Snapshot,
    StructuredData,
    Vendor,
)


class Scraper(Protocol):
    def fetch(self, url: str) -> ScrapeResult: ...


class Crawler(Protocol):
    def crawl_site(self, url: str, limit: int, max_depth: int) -> CrawlResult: ...


class Search(Protocol):
    def search_news(self, query: str) -> SearchResult: ...


class Extractor(Protocol):
    def extract(self, url: str) -> ExtractionResponse: ...


class NarrativeGenerator(Protocol):
    # None (or raising) means no analysis; the pipeline uses the rule engine
    def analyze(self,
                vendor_name: str,
                content: str,
                structured: Optional[StructuredData],
                previous_content: Optional[str] = None) -> Optional[NarrativeAnalysis]: ...


class Notifier(Protocol):
    def send(self, event: AlertMessage) -> bool: ...


class DocumentStore(Protocol):
    def save_snapshot(self, snapshot: Snapshot) -> None: ...

    def save_risk_event(self, event: RiskEvent) -> None: ...

    def latest_snapshot(self, vendor_id: str) -> Optional[Snapshot]: ...

    def list_vendors(self) -> List[Vendor]: ...

    def list_snapshots(self, vendor_id: str) -> List[Snapshot]: ...

    def list_risk_events(self, vendor_id: str) -> List[RiskEvent]: ...
