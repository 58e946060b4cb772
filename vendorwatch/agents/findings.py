# vendorwatch/agents/findings.py
"""
vendorwatch/agents/findings.py

Turns StructuredData into human-facing output:

- extract_risk_findings(data) -> List[RiskFinding]
- build_canonical_summary(data) -> str       (all fields, formalized, blank-line separated)
- build_concise_summary(data, max_items=5)   (one line, " | " joined)
- build_recommended_action(findings) -> str  (grouped risks + numbered actions)
- group_findings_by_category(findings)
- formalize_value(text)

All functions are pure; None / empty data yields empty output.
"""

from __future__ import annotations
import logging
import re
from typing import Dict, List, Optional

from vendorwatch.models import STRUCTURED_FIELDS, RiskFinding, StructuredData

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

FIELD_LABELS: Dict[str, str] = {
    "pricing_terms": "Pricing",
    "fee_structures": "Fee structures",
    "liability_clauses": "Liability",
    "indemnification_terms": "Indemnification",
    "termination_terms": "Termination",
    "renewal_terms": "Renewal",
    "data_retention_policies": "Data retention",
    "data_residency_locations": "Data residency",
    "encryption_practices": "Encryption",
    "compliance_references": "Compliance",
    "sla_uptime_commitments": "SLA & uptime",
    "support_response_times": "Support",
    "data_export_rights": "Data export",
}

FIELD_CATEGORY: Dict[str, str] = {
    "pricing_terms": "Financial",
    "fee_structures": "Financial",
    "liability_clauses": "Legal",
    "indemnification_terms": "Legal",
    "termination_terms": "Legal",
    "renewal_terms": "Legal",
    "data_retention_policies": "Data & Security",
    "data_residency_locations": "Data & Security",
    "encryption_practices": "Data & Security",
    "compliance_references": "Data & Security",
    "sla_uptime_commitments": "Operational",
    "support_response_times": "Operational",
    "data_export_rights": "Data & Security",
}

# Missing values here are reported as gaps
HIGH_CONCERN_FIELDS: Dict[str, str] = {
    "liability_clauses": "Liability cap or limitation",
    "data_residency_locations": "Data residency or storage location",
    "compliance_references": "Compliance or certification",
    "indemnification_terms": "Indemnification scope",
}

CATEGORY_ORDER = ["Legal", "Data & Security", "Financial", "Operational"]

CATEGORY_ACTIONS: Dict[str, str] = {
    "Legal": "Review liability and indemnification terms with legal. Assess if cap and scope align with risk tolerance.",
    "Data & Security": "Confirm data residency and compliance certifications. Update DPA or risk register if needed.",
    "Financial": "Compare pricing and fee structures against budget. Notify procurement or finance if material.",
    "Operational": "Review SLA and support commitments. Update escalation playbooks.",
}

PERIODIC_STEP = "Run the monitor periodically to detect future changes."

CONCISE_MAX_ITEMS = 5
CONCISE_MAX_CHARS = 120

_YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")


def _to_finding(text: str) -> Optional[str]:
    t = (text or "").strip()
    if len(t) < 3:
        return None
    return t[0].upper() + t[1:]


def extract_risk_findings(data: Optional[StructuredData]) -> List[RiskFinding]:
    if data is None:
        return []
    findings: List[RiskFinding] = []
    for key in STRUCTURED_FIELDS:
        category = FIELD_CATEGORY[key]
        concern = "high" if key in HIGH_CONCERN_FIELDS else "medium"
        facts = data.facts(key)
        if facts:
            for fact in facts:
                text = _to_finding(fact)
                if text:
                    findings.append(RiskFinding(category=category, finding=text, concern=concern))
        elif key in HIGH_CONCERN_FIELDS:
            findings.append(RiskFinding(
                category=category,
                finding=f"{HIGH_CONCERN_FIELDS[key]} not specified in vendor terms",
                concern="high",
            ))
    return findings


def _format_word(word: str) -> str:
    if not word:
        return word
    letters = [c for c in word if c.isalpha()]
    if len(letters) >= 2 and all(c.isupper() for c in letters):
        return word
    if word[0].isdigit() or word[0] in "$%":
        return word
    return word[0].upper() + word[1:].lower()


def formalize_value(text: str) -> str:
    """
    Normalize a fact for the canonical summary: bare years become "(2024)",
    words are title-cased except acronyms and numeric/currency tokens.
    """
    if not text:
        return ""
    t = _YEAR_RE.sub(r"(\1)", text.strip())
    return " ".join(_format_word(w) for w in t.split())


def build_canonical_summary(data: Optional[StructuredData]) -> str:
    if data is None:
        return ""
    blocks: List[str] = []
    for key in data.populated_fields():
        facts = [formalize_value(f) for f in data.facts(key)]
        if len(facts) == 1:
            value = facts[0]
        else:
            value = " ".join(f"{i}. {f}" for i, f in enumerate(facts, start=1))
        blocks.append(f"{FIELD_LABELS[key]}: {value}")
    return "\n\n".join(blocks)


def build_concise_summary(data: Optional[StructuredData], max_items: int = CONCISE_MAX_ITEMS) -> str:
    if data is None:
        return ""
    parts: List[str] = []
    for key in data.populated_fields()[:max_items]:
        first = data.facts(key)[0].strip()
        if len(first) > CONCISE_MAX_CHARS:
            first = first[:CONCISE_MAX_CHARS - 3] + "..."
        parts.append(f"{FIELD_LABELS[key]}: {first}")
    return " | ".join(parts)


def group_findings_by_category(findings: List[RiskFinding]) -> Dict[str, List[RiskFinding]]:
    """Findings bucketed by category, in display order; empty categories are omitted."""
    grouped: Dict[str, List[RiskFinding]] = {}
    for cat in CATEGORY_ORDER:
        items = [f for f in findings if f.category == cat]
        if items:
            grouped[cat] = items
    return grouped


def build_recommended_action(findings: List[RiskFinding]) -> str:
    if not findings:
        return ""
    grouped = group_findings_by_category(findings)

    lines = ["Risks/Liabilities identified:"]
    for cat, items in grouped.items():
        lines.append(f"• {cat}: {'; '.join(f.finding for f in items)}")

    lines.append("")
    lines.append("Recommended actions:")
    n = 0
    for cat in grouped:
        n += 1
        lines.append(f"{n}) {cat}: {CATEGORY_ACTIONS[cat]}")
    lines.append(f"{n + 1}) {PERIODIC_STEP}")
    return "\n".join(lines)
