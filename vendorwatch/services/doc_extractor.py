# vendorwatch/services/doc_extractor.py
"""
vendorwatch/services/doc_extractor.py

LLM-backed document extractor (implements the Extractor interface).

LLMDocumentExtractor.extract(url) -> ExtractionResponse
  1. GET the document with httpx.
  2. PDF bodies -> text via pypdf; HTML -> text via web_client.html_to_text.
  3. call_llm() with VENDOR_DOC_SCHEMA as a function schema and the
     liability-focused system instructions below.
  4. Return the raw structured dict in ExtractionResponse.facts. Normalization
     to StructuredData happens in agents.extract.

Fetch/parse failures return ok=False. A missing LLM key raises RuntimeError
from call_llm; the extraction orchestrator logs it and moves on.
"""
from __future__ import annotations
import io
import logging
from typing import Any, Dict, Optional

import httpx
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from vendorwatch.models import ExtractionResponse
from vendorwatch.services.llm_client import call_llm
from vendorwatch.services.web_client import USER_AGENT, html_to_text

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DOC_TIMEOUT = 30.0
MAX_DOC_CHARS = 60_000
MAX_PDF_PAGES = 40
EXTRACT_MAX_TOKENS = 2048


def _field(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


VENDOR_DOC_SCHEMA = {
    "name": "vendor_document_terms",
    "description": "Concrete vendor risk terms found in a legal, policy, pricing or SLA document.",
    "parameters": {
        "type": "object",
        "properties": {
            "pricing_terms": _field("Pricing facts: amounts, tiers, payment terms, refund policy. Keep numbers and plan names."),
            "fee_structures": _field("Setup, recurring and overage fees with amounts or percentages."),
            "liability_clauses": _field("Liability caps, limitation of liability, exclusions and carve-outs."),
            "indemnification_terms": _field("Who indemnifies whom, scope (IP, third-party claims), carve-outs."),
            "termination_terms": _field("Termination rights, notice periods, termination for cause, data return."),
            "renewal_terms": _field("Auto-renewal, renewal notice periods, price escalation on renewal."),
            "data_retention_policies": _field("Retention periods and deletion timelines, per data type where stated."),
            "data_residency_locations": _field("Where data is stored or processed: regions, countries, cloud providers."),
            "encryption_practices": _field("Encryption at rest and in transit, key management, algorithms."),
            "compliance_references": _field("Certifications and frameworks: SOC 2, ISO 27001, GDPR, HIPAA, PCI-DSS."),
            "sla_uptime_commitments": _field("Uptime percentages, service credits, SLA exclusions."),
            "support_response_times": _field("Support tiers, priority definitions, response-time commitments."),
            "data_export_rights": _field("Data portability, export formats and timelines."),
        },
    },
}

SYSTEM_PROMPT = """You extract vendor risk terms from Terms of Service, Privacy Policies, DPAs, pricing and SLA documents.
Focus on liabilities and risk factors a company evaluating this vendor would care about.

- liability_clauses: the cap (e.g. "Liability capped at fees paid in prior 12 months"), exclusions, carve-outs. State explicitly if uncapped.
- data_residency_locations: storage/processing regions (e.g. "EU only", "US-East").
- indemnification_terms: mutual or one-way, scope, carve-outs.
- termination_terms: notice period, termination for cause, data return, survival.
- compliance_references: each certification by name.
- sla_uptime_commitments: uptime percentage, service credits, exclusions.
- data_retention_policies: retention period and deletion timelines.
- pricing_terms / fee_structures: amounts, escalation, refunds.

Rules:
- One fact per array element, specific: amounts, percentages, timeframes, locations.
- Extract only what the document states. Do not infer.
- Omit a field entirely when the document says nothing about it.
- Plain language, no marketing copy."""


def pdf_to_text(data: bytes, max_pages: int = MAX_PDF_PAGES) -> str:
    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages[:max_pages]:
        parts.append(page.extract_text() or "")
    return "\n".join(p for p in parts if p.strip())


def _is_pdf(url: str, content_type: str, data: bytes) -> bool:
    return "pdf" in content_type or url.lower().split("?")[0].endswith(".pdf") or data[:5] == b"%PDF-"


class LLMDocumentExtractor:
    """Fetches one document and asks the configured LLM for the vendor term schema."""

    def __init__(self, provider: Optional[str] = None, client: Optional[httpx.Client] = None,
                 max_chars: int = MAX_DOC_CHARS):
        self.provider = provider
        self.max_chars = max_chars
        self.client = client or httpx.Client(timeout=DOC_TIMEOUT, follow_redirects=True,
                                             headers={"User-Agent": USER_AGENT})

    def load_document(self, url: str) -> str:
        resp = self.client.get(url)
        resp.raise_for_status()
        ctype = resp.headers.get("content-type", "").lower()
        if _is_pdf(url, ctype, resp.content):
            return pdf_to_text(resp.content)
        return html_to_text(resp.text, str(resp.url))

    def extract(self, url: str) -> ExtractionResponse:
        try:
            text = self.load_document(url)
        except (httpx.HTTPError, PdfReadError, ValueError) as e:
            logger.warning("Could not load document %s: %s", url, e)
            return ExtractionResponse(ok=False, error=str(e) or type(e).__name__)
        if not text.strip():
            return ExtractionResponse(ok=False, error="empty document")

        prompt = f"DOCUMENT URL: {url}\n\nDOCUMENT TEXT:\n---\n{text[:self.max_chars]}\n---"
        resp = call_llm(prompt, provider=self.provider, function_schema=VENDOR_DOC_SCHEMA,
                        system=SYSTEM_PROMPT, max_tokens=EXTRACT_MAX_TOKENS, temperature=0.0)
        structured = resp.get("structured")
        if not isinstance(structured, dict):
            logger.debug("No structured output from %s for %s", resp.get("provider"), url)
            return ExtractionResponse(ok=False, error="no structured output")
        return ExtractionResponse(facts=structured, ok=True)

    def close(self):
        self.client.close()
