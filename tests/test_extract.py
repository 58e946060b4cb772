from unittest.mock import Mock, patch

import pytest

from vendorwatch.agents.extract import (
    MAX_CANDIDATES,
    MAX_DOC_LINKS,
    extract_document_links,
    extract_structured_data,
    filter_structured_data,
    get_extraction_urls,
    normalize_structured,
)
from vendorwatch.models import ExtractionResponse, StructuredData


class TestExtractDocumentLinks:
    """Document link discovery in page content"""

    def test_markdown_links(self):
        """Markdown links to legal pages are resolved against the base URL"""
        text = "See [Terms](/terms) and [Privacy](https://acme.com/privacy). [Blog](/blog/post)"
        links = extract_document_links(text, "https://acme.com")
        assert links == ["https://acme.com/terms", "https://acme.com/privacy"]

    def test_html_anchor_links(self):
        """HTML anchors are parsed with BeautifulSoup"""
        html = '<footer><a href="/legal/dpa">DPA</a><a href="/careers">Jobs</a><a href="#top">Top</a></footer>'
        links = extract_document_links("", "https://acme.com", html=html)
        assert links == ["https://acme.com/legal/dpa"]

    def test_bare_pdf_urls(self):
        """Bare PDF URLs in text are picked up"""
        text = "Download https://cdn.acme.com/docs/msa-2024.pdf for the full agreement."
        links = extract_document_links(text, "https://acme.com")
        assert links == ["https://cdn.acme.com/docs/msa-2024.pdf"]

    def test_dedup_and_cap(self):
        """Duplicates collapse and the list is capped"""
        text = " ".join([
            "[a](/terms)", "[b](/terms)", "[c](/privacy)", "[d](/policy)", "[e](/tos)", "[f](/legal)",
        ])
        links = extract_document_links(text, "https://acme.com")
        assert len(links) == MAX_DOC_LINKS
        assert links[0] == "https://acme.com/terms"
        assert len(set(links)) == len(links)

    def test_bare_domain_base(self):
        """A base given without scheme still resolves links"""
        links = extract_document_links("[Terms](/terms)", "acme.com")
        assert links == ["https://acme.com/terms"]


class TestGetExtractionUrls:
    """Candidate URL list"""

    def test_doc_links_first_then_common_paths(self):
        """Discovered links lead, common legal paths follow, capped"""
        urls = get_extraction_urls(["https://acme.com/legal/msa.pdf"], "https://acme.com")
        assert urls[0] == "https://acme.com/legal/msa.pdf"
        assert urls[1:] == ["https://acme.com/legal", "https://acme.com/terms", "https://acme.com/terms-of-service"]
        assert len(urls) == MAX_CANDIDATES

    def test_no_doc_links(self):
        """Without links, common paths fill the list"""
        urls = get_extraction_urls([], "acme.com")
        assert urls == [
            "https://acme.com/legal",
            "https://acme.com/terms",
            "https://acme.com/terms-of-service",
            "https://acme.com/privacy",
        ]

    def test_dedup_against_common_paths(self):
        """A discovered link equal to a common path is not repeated"""
        urls = get_extraction_urls(["https://acme.com/terms"], "https://acme.com")
        assert urls.count("https://acme.com/terms") == 1


class TestNormalizeStructured:
    """Coercion of raw extractor output"""

    def test_strings_and_lists(self):
        """Strings become single-item lists, blanks are dropped, unknown keys ignored"""
        data = normalize_structured({
            "pricing_terms": "  $10/month ",
            "liability_clauses": ["Capped at fees paid", "", "  "],
            "compliance_references": [],
            "marketing_claims": ["Best in class"],
        })
        assert data.pricing_terms == ["$10/month"]
        assert data.liability_clauses == ["Capped at fees paid"]
        assert data.compliance_references is None
        assert data.populated_fields() == ["pricing_terms", "liability_clauses"]

    @pytest.mark.parametrize("raw", [None, {}, {"pricing_terms": ""}, {"unknown": ["x"]}, "text"])
    def test_nothing_survives(self, raw):
        """Empty results normalize to None"""
        assert normalize_structured(raw) is None


class TestFilterStructuredData:
    """Keyword filter on individual facts"""

    def test_keeps_relevant_drops_noise(self):
        """Customer-facing terms stay; internal reporting noise goes"""
        data = StructuredData(
            pricing_terms=["Subscription billed monthly", "Annual financials show growth"],
            fee_structures=["Payroll processing summary"],
        )
        filtered = filter_structured_data(data)
        assert filtered.pricing_terms == ["Subscription billed monthly"]
        assert filtered.fee_structures is None

    def test_all_removed(self):
        """Nothing relevant left means None"""
        data = StructuredData(pricing_terms=["Quarterly budget report"])
        assert filter_structured_data(data) is None


PAGE_TEXT = "Acme platform. [Terms of Service](/terms) [Privacy](/privacy)"


class TestExtractStructuredData:
    """Orchestration over candidate URLs"""

    def test_first_usable_result_wins(self):
        """Extraction stops at the first candidate that returns data"""
        extractor = Mock()
        extractor.extract.side_effect = [
            ExtractionResponse(facts={"liability_clauses": ["Capped at $1M"]}, ok=True),
            ExtractionResponse(facts={"pricing_terms": ["$5"]}, ok=True),
        ]
        outcome = extract_structured_data("acme.com", PAGE_TEXT, extractor)
        assert outcome.data.liability_clauses == ["Capped at $1M"]
        assert outcome.source_url == "https://acme.com/terms"
        assert extractor.extract.call_count == 1

    def test_exception_and_empty_results_skip_to_next(self):
        """Collaborator errors and empty output move on to the next candidate"""
        extractor = Mock()
        extractor.extract.side_effect = [
            RuntimeError("boom"),
            ExtractionResponse(ok=False, error="no structured output"),
            ExtractionResponse(facts={"sla_uptime_commitments": ["99.9% uptime"]}, ok=True),
        ]
        outcome = extract_structured_data("https://acme.com", PAGE_TEXT, extractor)
        assert outcome.data.sla_uptime_commitments == ["99.9% uptime"]
        assert outcome.tried == ["https://acme.com/terms", "https://acme.com/privacy", "https://acme.com/legal"]
        assert outcome.source_url == "https://acme.com/legal"

    def test_all_candidates_fail(self):
        """No usable result yields data=None without raising"""
        extractor = Mock()
        extractor.extract.return_value = ExtractionResponse(ok=False)
        outcome = extract_structured_data("acme.com", "", extractor)
        assert outcome.data is None
        assert outcome.source_url is None
        assert len(outcome.tried) == MAX_CANDIDATES

    def test_off_domain_links_never_sent_to_extractor(self):
        """Links to other domains are filtered out before extraction"""
        extractor = Mock()
        extractor.extract.return_value = ExtractionResponse(ok=False)
        extract_structured_data("acme.com", "[Terms](https://other.com/terms)", extractor)
        called = [c.args[0] for c in extractor.extract.call_args_list]
        assert "https://other.com/terms" not in called
        assert all(u.startswith("https://acme.com/") for u in called)

    def test_keyword_filter_applied_when_enabled(self):
        """keyword_filter=True runs the fact filter on the winning result"""
        extractor = Mock()
        extractor.extract.return_value = ExtractionResponse(
            facts={"pricing_terms": ["Subscription at $9", "Payroll summary"]}, ok=True)
        outcome = extract_structured_data("acme.com", PAGE_TEXT, extractor, keyword_filter=True)
        assert outcome.data.pricing_terms == ["Subscription at $9"]

    @patch("vendorwatch.agents.extract.looks_hallucinated", side_effect=[True, False])
    def test_guard_rejection_moves_to_next_candidate(self, mock_guard):
        """A result rejected by the guard is recorded and the next candidate is tried"""
        extractor = Mock()
        extractor.extract.side_effect = [
            ExtractionResponse(facts={"liability_clauses": ["Uncapped"]}, ok=True),
            ExtractionResponse(facts={"liability_clauses": ["Capped at $1M"]}, ok=True),
        ]
        outcome = extract_structured_data("acme.com", PAGE_TEXT, extractor)
        assert outcome.rejected == ["https://acme.com/terms"]
        assert outcome.tried == ["https://acme.com/terms", "https://acme.com/privacy"]
        assert outcome.source_url == "https://acme.com/privacy"
        assert outcome.data.liability_clauses == ["Capped at $1M"]
        assert mock_guard.call_args.args[1:] == ("https://acme.com/privacy", PAGE_TEXT)

    def test_rich_homepage_result_rejected(self):
        """A four-field result from the bare homepage of a marketing page is discarded"""
        rich = {
            "pricing_terms": ["$10"],
            "liability_clauses": ["Capped"],
            "data_residency_locations": ["EU"],
            "compliance_references": ["SOC 2"],
        }
        extractor = Mock()
        extractor.extract.return_value = ExtractionResponse(facts=rich, ok=True)
        with patch("vendorwatch.agents.extract.get_extraction_urls", return_value=["https://acme.com/"]), \
                patch("vendorwatch.agents.extract.filter_relevant_urls", side_effect=lambda d, urls: urls):
            outcome = extract_structured_data("acme.com", "Ship faster with Acme.", extractor)
        assert outcome.data is None
        assert outcome.rejected == ["https://acme.com/"]
