# vendorwatch/monitor.py
"""
vendorwatch/monitor.py

Monitoring cycle: walks the vendor list sequentially and runs the per-vendor
pipeline (pipeline_graph) for each one.

Primary API:
    ctx = CycleContext.from_config()
    results = run_cycle(ctx, vendor_ids=None, on_progress=print)
    ctx.request_cancellation()      # from another thread

Progress events (MonitorProgress): "progress" before each vendor, "result"
after it, "complete" once at the end (also after a cancellation, carrying the
partial results).

CLI:
    python -m vendorwatch.monitor [--vendor ID ...] [--mode basic|deep] [--export DIR]
"""

from __future__ import annotations
import argparse
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from pydantic import BaseModel, Field, field_validator

from vendorwatch.config import DEFAULT_ALERT_SEVERITIES, DEFAULT_RESEARCH_MODE, RESEARCH_MODES, SEVERITIES, cfg
from vendorwatch.models import MonitorProgress, MonitorResult
from vendorwatch.pipeline_graph import build_vendor_pipeline, run_vendor
from vendorwatch.services.contracts import (
    Crawler,
    DocumentStore,
    Extractor,
    NarrativeGenerator,
    Notifier,
    Scraper,
    Search,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CRAWL_LIMIT = 3
CRAWL_DEPTH = 2

ProgressCallback = Callable[[MonitorProgress], None]


class MonitorSettings(BaseModel):
    research_mode: str = DEFAULT_RESEARCH_MODE
    alert_severities: List[str] = Field(default_factory=lambda: list(DEFAULT_ALERT_SEVERITIES))
    keyword_filter: bool = False
    crawl_limit: int = CRAWL_LIMIT
    crawl_depth: int = CRAWL_DEPTH

    @field_validator("research_mode")
    @classmethod
    def _check_mode(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in RESEARCH_MODES:
            raise ValueError(f"research_mode must be one of {RESEARCH_MODES}")
        return v

    @field_validator("alert_severities")
    @classmethod
    def _check_severities(cls, v: List[str]) -> List[str]:
        kept = [s for s in (x.strip().lower() for x in v) if s in SEVERITIES]
        return kept or list(DEFAULT_ALERT_SEVERITIES)

    @classmethod
    def from_config(cls, **overrides) -> "MonitorSettings":
        values = dict(
            research_mode=cfg.RESEARCH_MODE,
            alert_severities=list(cfg.ALERT_SEVERITIES),
            keyword_filter=cfg.EXTRACTION_KEYWORD_FILTER,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class CycleContext:
    """Settings, collaborators and the cancellation flag for one monitoring run."""
    settings: MonitorSettings
    store: DocumentStore
    scraper: Scraper
    crawler: Optional[Crawler] = None
    search: Optional[Search] = None
    extractor: Optional[Extractor] = None
    narrative: Optional[NarrativeGenerator] = None
    notifier: Optional[Notifier] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    state: str = "idle"

    def request_cancellation(self) -> None:
        logger.info("Cancellation requested")
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def close(self) -> None:
        """Release collaborator resources (HTTP connection pools). Safe to call twice."""
        seen = set()
        for collaborator in (self.scraper, self.crawler, self.search, self.extractor, self.narrative, self.notifier):
            if collaborator is None or id(collaborator) in seen:
                continue
            seen.add(id(collaborator))
            close = getattr(collaborator, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.exception("Failed to close %s: %s", type(collaborator).__name__, e)

    @classmethod
    def from_config(cls, settings: Optional[MonitorSettings] = None, store=None) -> "CycleContext":
        """Wire the bundled collaborators from environment configuration."""
        from vendorwatch.agents.analyze import LLMNarrativeAnalyzer
        from vendorwatch.services.doc_extractor import LLMDocumentExtractor
        from vendorwatch.services.notifier import EmailNotifier
        from vendorwatch.services.search_client import TavilySearch
        from vendorwatch.services.store import RedisStore
        from vendorwatch.services.web_client import HttpScraper

        has_llm = bool(cfg.OPENAI_API_KEY or cfg.GEMINI_API_KEY)
        if not has_llm:
            logger.warning("No LLM key configured: structured extraction and narrative analysis disabled")
        scraper = HttpScraper()
        return cls(
            settings=settings or MonitorSettings.from_config(),
            store=store if store is not None else RedisStore(),
            scraper=scraper,
            crawler=scraper,
            search=TavilySearch() if cfg.TAVILY_API_KEY else None,
            extractor=LLMDocumentExtractor() if has_llm else None,
            narrative=LLMNarrativeAnalyzer() if has_llm else None,
            notifier=EmailNotifier.from_config(),
        )


def _emit(on_progress: Optional[ProgressCallback], event: MonitorProgress) -> None:
    # a broken subscriber must not abort the cycle
    if on_progress is None:
        return
    try:
        on_progress(event)
    except Exception as e:
        logger.exception("Progress callback failed on %s event: %s", event.type, e)


def run_cycle(context: CycleContext,
              vendor_ids: Optional[List[str]] = None,
              on_progress: Optional[ProgressCallback] = None) -> List[MonitorResult]:
    """
    Process every vendor (or only vendor_ids) once, strictly in order. A vendor
    failing never stops the cycle; only request_cancellation() does, checked
    before each vendor.
    """
    context.cancel_event.clear()
    context.state = "running"
    vendors = context.store.list_vendors()
    if vendor_ids:
        wanted = set(vendor_ids)
        vendors = [v for v in vendors if v.id in wanted]

    total = len(vendors)
    results: List[MonitorResult] = []
    pipeline = build_vendor_pipeline(context)
    logger.info("Monitoring cycle started: %d vendors, mode=%s", total, context.settings.research_mode)
    started = time.time()

    for i, vendor in enumerate(vendors):
        if context.cancelled:
            logger.info("Cycle cancelled after %d of %d vendors", i, total)
            context.state = "cancelled"
            _emit(on_progress, MonitorProgress(type="complete", results=list(results)))
            return results

        _emit(on_progress, MonitorProgress(type="progress", current=i, total=total, vendor_name=vendor.name))
        try:
            result = run_vendor(pipeline, vendor)
        except Exception as e:
            logger.exception("Vendor %s failed: %s", vendor.name, e)
            result = MonitorResult(vendor_id=vendor.id, vendor_name=vendor.name, status="error",
                                   error=str(e) or "Unknown error")
        results.append(result)
        _emit(on_progress, MonitorProgress(type="result", current=i + 1, total=total, result=result))

    context.state = "completed"
    logger.info("Monitoring cycle completed in %.1fs: %d results", time.time() - started, len(results))
    _emit(on_progress, MonitorProgress(type="complete", results=list(results)))
    return results


def _log_progress(event: MonitorProgress) -> None:
    if event.type == "progress":
        logger.info("(%s/%s) %s", event.current + 1, event.total, event.vendor_name)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="vendorwatch.monitor", description="Run one vendor monitoring cycle.")
    parser.add_argument("--vendor", action="append", dest="vendors", metavar="ID",
                        help="only monitor this vendor id (repeatable)")
    parser.add_argument("--mode", choices=RESEARCH_MODES, help="research mode override")
    parser.add_argument("--export", metavar="DIR", help="write CSV/Markdown exports of the latest snapshots")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctx = CycleContext.from_config(settings=MonitorSettings.from_config(research_mode=args.mode))
    try:
        results = run_cycle(ctx, vendor_ids=args.vendors, on_progress=_log_progress)

        print(f"Completed. Processed {len(results)} vendor(s):")
        for r in results:
            print(f"  - {r.vendor_name}: {r.status}" + (f" ({r.error})" if r.error else ""))

        if args.export:
            from vendorwatch.agents.export import write_exports
            for vendor in ctx.store.list_vendors():
                if args.vendors and vendor.id not in args.vendors:
                    continue
                write_exports(args.export, vendor, ctx.store.latest_snapshot(vendor.id),
                              ctx.store.list_risk_events(vendor.id))
    finally:
        ctx.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
