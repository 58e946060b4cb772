from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Severity = Literal["low", "medium", "high"]
RiskCategory = Literal["Legal", "Data & Security", "Financial", "Operational"]
MonitorStatus = Literal["unchanged", "changed", "error", "first_snapshot"]

# Order matters: summaries and exports walk fields in this order.
STRUCTURED_FIELDS = (
    "pricing_terms",
    "fee_structures",
    "liability_clauses",
    "indemnification_terms",
    "termination_terms",
    "renewal_terms",
    "data_retention_policies",
    "data_residency_locations",
    "encryption_practices",
    "compliance_references",
    "sla_uptime_commitments",
    "support_response_times",
    "data_export_rights",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Vendor(BaseModel):
    id: str
    name: str
    website: str
    category: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class StructuredData(BaseModel):
    pricing_terms: Optional[List[str]] = None
    fee_structures: Optional[List[str]] = None
    liability_clauses: Optional[List[str]] = None
    indemnification_terms: Optional[List[str]] = None
    termination_terms: Optional[List[str]] = None
    renewal_terms: Optional[List[str]] = None
    data_retention_policies: Optional[List[str]] = None
    data_residency_locations: Optional[List[str]] = None
    encryption_practices: Optional[List[str]] = None
    compliance_references: Optional[List[str]] = None
    sla_uptime_commitments: Optional[List[str]] = None
    support_response_times: Optional[List[str]] = None
    data_export_rights: Optional[List[str]] = None

    def facts(self, field: str) -> List[str]:
        return [f for f in (getattr(self, field) or []) if f and f.strip()]

    def populated_fields(self) -> List[str]:
        return [f for f in STRUCTURED_FIELDS if self.facts(f)]

    def is_empty(self) -> bool:
        return not self.populated_fields()


class ExternalSource(BaseModel):
    url: str
    title: Optional[str] = None
    snippet: Optional[str] = None
    published: Optional[str] = None
    source: Literal["news", "web"] = "web"


class Snapshot(BaseModel):
    vendor_id: str
    content_hash: str
    extracted_text: str
    structured_data: Optional[StructuredData] = None
    extraction_source_url: Optional[str] = None
    external_sources: List[ExternalSource] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


class RiskFinding(BaseModel):
    category: RiskCategory
    finding: str
    concern: Severity = "medium"


class RuleResult(BaseModel):
    type: Literal["financial", "legal", "security", "operational"]
    category: RiskCategory
    severity: Severity
    summary: str
    recommended_action: str
    fields: List[str] = Field(default_factory=list)


class RiskEvent(BaseModel):
    vendor_id: str
    severity: Severity
    type: str
    summary: str
    recommended_action: str
    structured_insights: Optional[str] = None
    risk_findings: List[RiskFinding] = Field(default_factory=list)
    rule_signals: List[RuleResult] = Field(default_factory=list)
    source: Literal["rules", "ai"] = "rules"
    alert_sent: bool = False
    external_sources: List[ExternalSource] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


class NarrativeAnalysis(BaseModel):
    severity: Severity
    type: str
    summary: str
    recommended_action: str


class AlertMessage(BaseModel):
    vendor_name: str
    vendor_website: str
    severity: Severity
    type: str
    summary: str
    recommended_action: str


class MonitorResult(BaseModel):
    vendor_id: str
    vendor_name: str
    status: MonitorStatus
    error: Optional[str] = None
    risk_event_created: Optional[bool] = None
    pages_crawled: Optional[int] = None
    external_sources_found: Optional[int] = None


class MonitorProgress(BaseModel):
    type: Literal["progress", "result", "complete", "error"]
    current: Optional[int] = None
    total: Optional[int] = None
    vendor_name: Optional[str] = None
    result: Optional[MonitorResult] = None
    results: Optional[List[MonitorResult]] = None
    error: Optional[str] = None


class ExtractionResponse(BaseModel):
    facts: Dict[str, Any] = Field(default_factory=dict)
    ok: bool = False
    error: Optional[str] = None


class ScrapeResult(BaseModel):
    ok: bool
    text: str = ""
    html: Optional[str] = None
    error: Optional[str] = None


class CrawlResult(BaseModel):
    ok: bool
    pages: List[str] = Field(default_factory=list)
    text: str = ""
    error: Optional[str] = None


class SearchResult(BaseModel):
    ok: bool
    sources: List[ExternalSource] = Field(default_factory=list)
    text: str = ""
    error: Optional[str] = None
