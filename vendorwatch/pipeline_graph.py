"""
LangGraph per-vendor monitoring pipeline.

One invocation processes one vendor:

    fetch -> baseline -> crawl -> search -> fingerprint
          -> extract -> classify -> synthesize -> alert -> persist

- a failed fetch ends the run with status "error"
- an unchanged fingerprint ends the run with status "unchanged" (nothing written)
- first_snapshot / changed runs write exactly one Snapshot and one RiskEvent
- page_text (homepage + crawl) drives structured extraction; text adds the
  news search block and is what gets fingerprinted and stored

Collaborators come from the CycleContext the graph is built for:
    from vendorwatch.pipeline_graph import build_vendor_pipeline, run_vendor
    pipeline = build_vendor_pipeline(ctx)
    result = run_vendor(pipeline, vendor)
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from vendorwatch.agents.alert import send_risk_alert
from vendorwatch.agents.extract import extract_structured_data
from vendorwatch.agents.findings import (
    build_canonical_summary,
    build_concise_summary,
    build_recommended_action,
    extract_risk_findings,
)
from vendorwatch.agents.fingerprint import fingerprint
from vendorwatch.agents.relevance import normalize_url
from vendorwatch.agents.rules import run_rule_engine, select_rule_result
from vendorwatch.models import (
    AlertMessage,
    ExternalSource,
    MonitorResult,
    RiskEvent,
    RiskFinding,
    RuleResult,
    Snapshot,
    StructuredData,
    Vendor,
)
from vendorwatch.services.search_client import build_risk_query

if TYPE_CHECKING:
    from vendorwatch.monitor import CycleContext

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CRAWL_HEADER = "\n\n--- CRAWLED PAGES ({n}) ---\n"
SEARCH_HEADER = "\n\n--- EXTERNAL SEARCH (news/web) ---\n"

INITIAL_SUMMARY = "Initial baseline established. Content stored for future comparison."
INITIAL_ACTION = ("1) Run the monitor periodically to detect changes. "
                  "2) Review vendor terms and structured data in the dashboard.")
CHANGED_SUMMARY = ("Vendor content changed. No structured field changes detected by rules; "
                   "review extracted content.")
CHANGED_ACTION = ("1) Review the extracted content and structured data in the dashboard. "
                  "2) Run monitor again after vendor updates documents.")

STRUCTURED_INSIGHTS_MAX = 500


class VendorState(TypedDict, total=False):
    vendor: Vendor
    url: str
    page_text: str
    text: str
    html: Optional[str]
    previous: Optional[Snapshot]
    pages_crawled: int
    external_sources: List[ExternalSource]
    content_hash: str
    status: str
    error: Optional[str]
    structured: Optional[StructuredData]
    extraction_source_url: Optional[str]
    rule_results: List[RuleResult]
    severity: str
    type: str
    summary: str
    recommended_action: str
    source: str
    structured_insights: Optional[str]
    risk_findings: List[RiskFinding]
    alert_sent: bool


def build_vendor_pipeline(ctx: "CycleContext"):
    settings = ctx.settings

    def node_fetch(state: VendorState) -> VendorState:
        vendor = state["vendor"]
        url = normalize_url(vendor.website)
        state["url"] = url
        logger.info("[fetch] vendor=%s url=%s", vendor.name, url)
        try:
            scraped = ctx.scraper.fetch(url)
        except Exception as e:
            logger.exception("Scraper raised for %s: %s", url, e)
            state["status"], state["error"] = "error", str(e) or type(e).__name__
            return state
        if not scraped.ok:
            state["status"], state["error"] = "error", scraped.error or "fetch failed"
            return state
        state["page_text"] = scraped.text or ""
        state["text"] = state["page_text"]
        state["html"] = scraped.html
        return state

    def node_baseline(state: VendorState) -> VendorState:
        state["previous"] = ctx.store.latest_snapshot(state["vendor"].id)
        return state

    def node_crawl(state: VendorState) -> VendorState:
        state["pages_crawled"] = 0
        if state.get("previous") is not None or ctx.crawler is None:
            return state
        try:
            crawled = ctx.crawler.crawl_site(state["url"], settings.crawl_limit, settings.crawl_depth)
        except Exception as e:
            logger.exception("Crawl failed for %s: %s", state["url"], e)
            return state
        if crawled.ok and crawled.text:
            n = len(crawled.pages)
            state["page_text"] += CRAWL_HEADER.format(n=n) + crawled.text
            state["text"] = state["page_text"]
            state["pages_crawled"] = n
        else:
            logger.warning("Crawl gave nothing for %s: %s", state["url"], crawled.error)
        return state

    def node_search(state: VendorState) -> VendorState:
        state["external_sources"] = []
        if ctx.search is None:
            return state
        try:
            found = ctx.search.search_news(build_risk_query(state["vendor"].name))
        except Exception as e:
            logger.exception("Search failed for %s: %s", state["vendor"].name, e)
            return state
        if found.ok and found.text:
            state["text"] += SEARCH_HEADER + found.text
            state["external_sources"] = list(found.sources)
        elif not found.ok:
            logger.warning("Search unavailable for %s: %s", state["vendor"].name, found.error)
        return state

    def node_fingerprint(state: VendorState) -> VendorState:
        state["content_hash"] = fingerprint(state["text"])
        previous = state.get("previous")
        if previous is None:
            state["status"] = "first_snapshot"
        elif previous.content_hash == state["content_hash"]:
            state["status"] = "unchanged"
        else:
            state["status"] = "changed"
        logger.info("[fingerprint] vendor=%s status=%s", state["vendor"].name, state["status"])
        return state

    def node_extract(state: VendorState) -> VendorState:
        state["structured"], state["extraction_source_url"] = None, None
        if ctx.extractor is None:
            return state
        try:
            outcome = extract_structured_data(
                state["url"], state["page_text"], ctx.extractor,
                page_html=state.get("html"), keyword_filter=settings.keyword_filter,
            )
        except Exception as e:
            logger.exception("Structured extraction failed for %s: %s", state["url"], e)
            return state
        state["structured"] = outcome.data
        state["extraction_source_url"] = outcome.source_url
        return state

    def node_classify(state: VendorState) -> VendorState:
        previous = state.get("previous")
        structured = state.get("structured")
        first = previous is None
        canonical = build_canonical_summary(structured)
        results = run_rule_engine(previous.structured_data if previous else None, structured)
        state["rule_results"] = results

        if settings.research_mode == "deep" and ctx.narrative is not None:
            try:
                analysis = ctx.narrative.analyze(
                    state["vendor"].name, state["text"], structured,
                    previous_content=None if first else previous.extracted_text,
                )
            except Exception as e:
                logger.exception("Narrative analysis raised for %s: %s", state["vendor"].name, e)
                analysis = None
            if analysis is not None:
                state["severity"], state["type"] = analysis.severity, analysis.type
                state["summary"] = f"{analysis.summary}\n\n{canonical}" if canonical else analysis.summary
                state["recommended_action"] = analysis.recommended_action
                state["source"] = "ai"
                return state

        fallback_summary, fallback_action = (INITIAL_SUMMARY, INITIAL_ACTION) if first else (CHANGED_SUMMARY, CHANGED_ACTION)
        chosen = select_rule_result(results, canonical or fallback_summary, fallback_action)
        state["severity"], state["type"] = chosen.severity, chosen.type
        state["summary"] = canonical or chosen.summary
        state["recommended_action"] = chosen.recommended_action
        state["source"] = "rules"
        return state

    def node_synthesize(state: VendorState) -> VendorState:
        structured = state.get("structured")
        canonical = build_canonical_summary(structured)
        concise = build_concise_summary(structured)
        state["structured_insights"] = concise or canonical[:STRUCTURED_INSIGHTS_MAX] or None
        findings = extract_risk_findings(structured)
        state["risk_findings"] = findings
        actions = build_recommended_action(findings)
        if actions:
            state["recommended_action"] = actions
        return state

    def node_alert(state: VendorState) -> VendorState:
        vendor = state["vendor"]
        message = AlertMessage(
            vendor_name=vendor.name,
            vendor_website=state["url"],
            severity=state["severity"],
            type=state["type"],
            summary=state["summary"],
            recommended_action=state["recommended_action"],
        )
        state["alert_sent"] = send_risk_alert(message, settings, ctx.notifier)
        return state

    def node_persist(state: VendorState) -> VendorState:
        vendor = state["vendor"]
        ctx.store.save_snapshot(Snapshot(
            vendor_id=vendor.id,
            content_hash=state["content_hash"],
            extracted_text=state["text"],
            structured_data=state.get("structured"),
            extraction_source_url=state.get("extraction_source_url"),
            external_sources=state.get("external_sources", []),
        ))
        ctx.store.save_risk_event(RiskEvent(
            vendor_id=vendor.id,
            severity=state["severity"],
            type=state["type"],
            summary=state["summary"],
            recommended_action=state["recommended_action"],
            structured_insights=state.get("structured_insights"),
            risk_findings=state.get("risk_findings", []),
            rule_signals=state.get("rule_results", []),
            source=state["source"],
            alert_sent=state.get("alert_sent", False),
            external_sources=state.get("external_sources", []),
        ))
        logger.info("[persist] vendor=%s severity=%s type=%s alert_sent=%s",
                    vendor.name, state["severity"], state["type"], state.get("alert_sent"))
        return state

    def route_after_fetch(state: VendorState) -> str:
        return "end" if state.get("status") == "error" else "continue"

    def route_after_fingerprint(state: VendorState) -> str:
        return "end" if state["status"] == "unchanged" else "continue"

    graph = StateGraph(VendorState)
    graph.add_node("fetch", node_fetch)
    graph.add_node("baseline", node_baseline)
    graph.add_node("crawl", node_crawl)
    graph.add_node("search", node_search)
    graph.add_node("fingerprint", node_fingerprint)
    graph.add_node("extract", node_extract)
    graph.add_node("classify", node_classify)
    graph.add_node("synthesize", node_synthesize)
    graph.add_node("alert", node_alert)
    graph.add_node("persist", node_persist)

    graph.set_entry_point("fetch")
    graph.add_conditional_edges("fetch", route_after_fetch, {"end": END, "continue": "baseline"})
    graph.add_edge("baseline", "crawl")
    graph.add_edge("crawl", "search")
    graph.add_edge("search", "fingerprint")
    graph.add_conditional_edges("fingerprint", route_after_fingerprint, {"end": END, "continue": "extract"})
    graph.add_edge("extract", "classify")
    graph.add_edge("classify", "synthesize")
    graph.add_edge("synthesize", "alert")
    graph.add_edge("alert", "persist")
    graph.add_edge("persist", END)

    return graph.compile()


def _positive(n: Optional[int]) -> Optional[int]:
    return n if n else None


def run_vendor(pipeline, vendor: Vendor) -> MonitorResult:
    final: Dict[str, Any] = pipeline.invoke({"vendor": vendor})
    status = final.get("status", "error")
    if status == "error":
        return MonitorResult(vendor_id=vendor.id, vendor_name=vendor.name, status="error",
                             error=final.get("error"))
    return MonitorResult(
        vendor_id=vendor.id,
        vendor_name=vendor.name,
        status=status,
        risk_event_created=True if status in ("first_snapshot", "changed") else None,
        pages_crawled=_positive(final.get("pages_crawled")),
        external_sources_found=_positive(len(final.get("external_sources") or [])),
    )
