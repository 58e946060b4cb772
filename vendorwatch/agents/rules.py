# vendorwatch/agents/rules.py
"""
Rule engine: deterministic risk classification from two StructuredData snapshots.

run_rule_engine(previous, current) compares the snapshots field by field and
returns one RuleResult per rule that fires, in fixed priority order:

    financial -> liability -> termination -> indemnification -> residency
    -> compliance -> retention -> SLA -> support

The text of each result is canned per rule; it never quotes the changed values.
select_rule_result() picks the first (highest-priority) result or a
low-severity fallback when nothing fired.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple

from vendorwatch.models import RuleResult, StructuredData

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_CATEGORY_BY_TYPE = {
    "financial": "Financial",
    "legal": "Legal",
    "security": "Data & Security",
    "operational": "Operational",
}


def _norm(data: Optional[StructuredData], field: str) -> str:
    if data is None:
        return ""
    return " ".join(data.facts(field)).strip().lower()


def _changed(prev: Optional[StructuredData], curr: Optional[StructuredData], field: str) -> bool:
    return _norm(prev, field) != _norm(curr, field)


def _compliance_severity(prev: Optional[StructuredData], curr: Optional[StructuredData]) -> str:
    removed = bool(_norm(prev, "compliance_references")) and not _norm(curr, "compliance_references")
    return "high" if removed else "medium"


def _compliance_summary(prev: Optional[StructuredData], curr: Optional[StructuredData]) -> str:
    if _compliance_severity(prev, curr) == "high":
        return "Compliance references have been removed. Verify vendor still meets required certifications."
    return "Compliance or certification references have changed. Verify continued alignment."


# (fields, type, severity, summary, recommended action)
# severity/summary may be callables taking (previous, current)
Rule = Tuple[Sequence[str], str, object, object, str]

RULES: List[Rule] = [
    (
        ("pricing_terms", "fee_structures"),
        "financial",
        "medium",
        "Pricing terms or fee structures have changed. Review the updated terms for cost or payment impact.",
        "1) Compare old and new pricing/fee sections. 2) Update internal cost models if needed. "
        "3) Notify procurement or finance if material.",
    ),
    (
        ("liability_clauses",),
        "legal",
        "medium",
        "Liability or limitation-of-liability language has changed. May affect risk allocation.",
        "1) Review the new liability clauses. 2) Compare to previous terms. "
        "3) Escalate to legal if cap decreased or scope narrowed.",
    ),
    (
        ("termination_terms",),
        "legal",
        "medium",
        "Termination or notice period terms have changed. May affect exit or renewal timing.",
        "1) Check new notice periods and termination conditions. 2) Update runbooks if notice period increased. "
        "3) Document for contract reviews.",
    ),
    (
        ("indemnification_terms",),
        "legal",
        "medium",
        "Indemnification language has changed. May affect who bears risk for claims.",
        "1) Review new indemnification terms. 2) Compare to previous. "
        "3) Involve legal if scope or carve-outs changed.",
    ),
    (
        ("data_residency_locations",),
        "security",
        "high",
        "Data residency or data location commitments have changed. May impact compliance (e.g. GDPR, locality).",
        "1) Confirm where data will be processed/stored. 2) Check compliance impact. "
        "3) Update DPA or risk register if needed.",
    ),
    (
        ("compliance_references",),
        "security",
        _compliance_severity,
        _compliance_summary,
        "1) List current compliance claims. 2) Re-verify certifications if critical. "
        "3) Update vendor risk assessment.",
    ),
    (
        ("data_retention_policies",),
        "security",
        "medium",
        "Data retention policy has changed. May affect deletion obligations or audit requirements.",
        "1) Review new retention periods and deletion process. 2) Align with internal retention policy. "
        "3) Update DPIA if needed.",
    ),
    (
        ("sla_uptime_commitments",),
        "operational",
        "medium",
        "SLA or uptime commitments have changed. May affect availability guarantees.",
        "1) Compare old and new SLA numbers. 2) If weakened, assess impact and escalation. "
        "3) Document in vendor file.",
    ),
    (
        ("support_response_times",),
        "operational",
        "low",
        "Support or response-time commitments have changed.",
        "1) Review new support terms. 2) Update escalation playbooks if needed.",
    ),
]


def _resolve(value, prev, curr):
    return value(prev, curr) if callable(value) else value


def run_rule_engine(previous: Optional[StructuredData], current: Optional[StructuredData]) -> List[RuleResult]:
    """
    Compare two snapshots' structured data. Total: never raises, returns []
    when nothing changed (including both sides being None).
    """
    results: List[RuleResult] = []
    for fields, rtype, severity, summary, action in RULES:
        fired = [f for f in fields if _changed(previous, current, f)]
        if not fired:
            continue
        results.append(RuleResult(
            type=rtype,
            category=_CATEGORY_BY_TYPE[rtype],
            severity=_resolve(severity, previous, current),
            summary=_resolve(summary, previous, current),
            recommended_action=action,
            fields=fired,
        ))
    logger.debug("Rule engine fired %d rules", len(results))
    return results


def select_rule_result(results: List[RuleResult], fallback_summary: str, fallback_action: str) -> RuleResult:
    if results:
        return results[0]
    return RuleResult(
        type="operational",
        category="Operational",
        severity="low",
        summary=fallback_summary,
        recommended_action=fallback_action,
    )
