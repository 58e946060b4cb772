# vendorwatch/agents/analyze.py
"""
vendorwatch/agents/analyze.py

Narrative risk analysis for deep research mode (implements the
NarrativeGenerator interface).

LLMNarrativeAnalyzer.analyze(vendor_name, content, structured, previous_content=None)
  - previous_content None  -> baseline assessment prompt (first 4000 chars)
  - previous_content given -> change assessment prompt (old/new, 3000 chars each)
  - structured data, when present, is appended as JSON context

The model must answer with JSON {severity, type, summary, recommended_action}.
Any failure (no key, SDK error, unparsable output, severity outside
low/medium/high) returns None and the pipeline classifies with the rule
engine instead. A valid answer missing type/summary/action is completed from
INITIAL_DEFAULTS / CHANGE_DEFAULTS.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from vendorwatch.config import SEVERITIES
from vendorwatch.models import NarrativeAnalysis, StructuredData
from vendorwatch.services.llm_client import call_llm

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

INITIAL_PREVIEW_CHARS = 4000
CHANGE_PREVIEW_CHARS = 3000
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 1536

SEVERITY_GUIDE = """
SEVERITY DEFINITIONS (use these strictly):
- low: Cosmetic or routine only. No contract, security, or compliance impact. Examples: nav change, marketing copy, new blog post.
- medium: Worth review but not urgent. Examples: pricing clarification, SLA wording tweak, new FAQ, minor policy update.
- high: Significant impact on liability, security, pricing, or compliance. Examples: new liability cap, data handling change, price increase, breach notice.
"""

INITIAL_DEFAULTS = NarrativeAnalysis(
    severity="low",
    type="initial_scan",
    summary="Initial baseline established. Content has been stored for future comparison.",
    recommended_action="1) Run the monitor periodically to detect changes. 2) Review vendor terms and policies as needed.",
)

CHANGE_DEFAULTS = NarrativeAnalysis(
    severity="medium",
    type="content_change",
    summary=("Vendor page content changed since last check. "
             "A change was detected but detailed analysis is unavailable."),
    recommended_action="1) Review the extracted content in the dashboard. 2) Run the monitor again to capture analysis.",
)

_ANSWER_SHAPE = """{{
  "severity": "low" | "medium" | "high",
  "type": {types},
  "summary": "{summary_hint}",
  "recommended_action": "Numbered action steps. Format: 1) [Step]. 2) [Step]. 3) [Step if needed]. Each step clear and actionable."
}}"""


def _structured_section(structured: Optional[StructuredData]) -> str:
    if structured is None or structured.is_empty():
        return ""
    payload = structured.model_dump(exclude_none=True)
    return ("\n\nSTRUCTURED TERMS (extracted from the vendor's legal/policy documents):\n"
            + json.dumps(payload, indent=2))


def build_initial_prompt(vendor_name: str, content: str, structured: Optional[StructuredData] = None) -> str:
    shape = _ANSWER_SHAPE.format(
        types='"pricing" | "legal" | "security" | "sla" | "compliance" | "initial_scan" | "other"',
        summary_hint=("Detailed analysis (2-4 sentences): what is on the page, which risk areas matter "
                      "(pricing, legal, security, compliance), why it matters to a company relying on this vendor"),
    )
    return (
        f"You are a vendor risk analyst. A company is establishing a baseline for vendor \"{vendor_name}\". "
        f"This is the first time its website has been captured.\n\n"
        f"EXTRACTED CONTENT (excerpt):\n---\n{content[:INITIAL_PREVIEW_CHARS]}\n---"
        f"{_structured_section(structured)}\n\n"
        f"Provide an initial risk assessment. Respond with JSON only (no markdown):\n{shape}\n"
        f"{SEVERITY_GUIDE}\nRespond with valid JSON only."
    )


def build_change_prompt(vendor_name: str, previous: str, current: str,
                        structured: Optional[StructuredData] = None) -> str:
    shape = _ANSWER_SHAPE.format(
        types='"pricing" | "legal" | "security" | "sla" | "compliance" | "content_change" | "other"',
        summary_hint=("Detailed analysis (3-5 sentences): what specifically changed, where it appears, why it "
                      "matters to vendor risk, which risk areas are affected. Be specific."),
    )
    return (
        f"You are a vendor risk analyst. A company monitors vendor websites for changes. "
        f"The following content change was detected for vendor \"{vendor_name}\".\n\n"
        f"PREVIOUS CONTENT (excerpt):\n---\n{previous[:CHANGE_PREVIEW_CHARS]}\n---\n\n"
        f"NEW CONTENT (excerpt):\n---\n{current[:CHANGE_PREVIEW_CHARS]}\n---"
        f"{_structured_section(structured)}\n\n"
        f"Analyze this change and respond with JSON only (no markdown, no explanation):\n{shape}\n"
        f"{SEVERITY_GUIDE}\nRespond with valid JSON only."
    )


def parse_analysis(payload: Any, defaults: NarrativeAnalysis) -> Optional[NarrativeAnalysis]:
    """Validate model output; None unless it carries a known severity."""
    if not isinstance(payload, dict):
        return None
    severity = str(payload.get("severity") or "").strip().lower()
    if severity not in SEVERITIES:
        return None

    def _text(key: str, default: str) -> str:
        value = payload.get(key)
        return value.strip() if isinstance(value, str) and value.strip() else default

    action = payload.get("recommended_action", payload.get("recommendedAction"))
    return NarrativeAnalysis(
        severity=severity,
        type=_text("type", defaults.type),
        summary=_text("summary", defaults.summary),
        recommended_action=action.strip() if isinstance(action, str) and action.strip() else defaults.recommended_action,
    )


class LLMNarrativeAnalyzer:
    def __init__(self, provider: Optional[str] = None):
        self.provider = provider

    def analyze(self,
                vendor_name: str,
                content: str,
                structured: Optional[StructuredData],
                previous_content: Optional[str] = None) -> Optional[NarrativeAnalysis]:
        """None when the model is unavailable or its answer is unusable."""
        if previous_content is None:
            prompt, defaults = build_initial_prompt(vendor_name, content, structured), INITIAL_DEFAULTS
        else:
            prompt = build_change_prompt(vendor_name, previous_content, content, structured)
            defaults = CHANGE_DEFAULTS
        try:
            resp: Dict[str, Any] = call_llm(prompt, provider=self.provider,
                                            temperature=ANALYSIS_TEMPERATURE, max_tokens=ANALYSIS_MAX_TOKENS)
        except RuntimeError as e:
            logger.warning("Narrative analysis unavailable for %s: %s", vendor_name, e)
            return None
        except Exception as e:
            logger.exception("Narrative analysis failed for %s: %s", vendor_name, e)
            return None
        result = parse_analysis(resp.get("structured"), defaults)
        if result is None:
            logger.warning("Narrative output for %s unusable; falling back to rules", vendor_name)
        return result
