from unittest.mock import patch

import httpx
import pytest

from vendorwatch.services.doc_extractor import (
    SYSTEM_PROMPT,
    VENDOR_DOC_SCHEMA,
    LLMDocumentExtractor,
    _is_pdf,
)

TERMS_HTML = """
<html><body>
<h1>Terms of Service</h1>
<p>Our aggregate liability is capped at fees paid in the prior 12 months.</p>
</body></html>
"""


def _client(status=200, body=TERMS_HTML.encode(), content_type="text/html"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=body, headers={"content-type": content_type})
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestIsPdf:
    """PDF detection"""

    @pytest.mark.parametrize("url,ctype,data", [
        ("https://acme.com/dpa", "application/pdf", b""),
        ("https://acme.com/legal/dpa.PDF?v=2", "application/octet-stream", b""),
        ("https://acme.com/download", "application/octet-stream", b"%PDF-1.7 ..."),
    ])
    def test_detected(self, url, ctype, data):
        """Content type, extension or magic bytes mark a PDF"""
        assert _is_pdf(url, ctype, data)

    def test_html_not_pdf(self):
        """Plain HTML is not a PDF"""
        assert not _is_pdf("https://acme.com/terms", "text/html", b"<html>")


class TestExtract:
    """LLMDocumentExtractor with call_llm mocked"""

    @patch("vendorwatch.services.doc_extractor.call_llm")
    def test_html_document(self, mock_llm):
        """HTML text and the vendor schema go to the LLM; facts come back"""
        mock_llm.return_value = {"structured": {"liability_clauses": ["Capped at 12 months of fees"]},
                                 "provider": "openai"}
        extractor = LLMDocumentExtractor(provider="openai", client=_client())
        result = extractor.extract("https://acme.com/terms")

        assert result.ok
        assert result.facts == {"liability_clauses": ["Capped at 12 months of fees"]}
        args, kwargs = mock_llm.call_args
        assert "liability is capped" in args[0]
        assert kwargs["function_schema"] is VENDOR_DOC_SCHEMA
        assert kwargs["system"] == SYSTEM_PROMPT
        assert kwargs["provider"] == "openai"

    @patch("vendorwatch.services.doc_extractor.call_llm")
    @patch("vendorwatch.services.doc_extractor.pdf_to_text", return_value="Data is stored in the EU.")
    def test_pdf_document(self, mock_pdf, mock_llm):
        """PDF bodies are converted with the PDF reader"""
        mock_llm.return_value = {"structured": {"data_residency_locations": ["EU"]}}
        extractor = LLMDocumentExtractor(client=_client(body=b"%PDF-1.4 fake", content_type="application/pdf"))
        result = extractor.extract("https://acme.com/dpa.pdf")

        assert result.ok
        mock_pdf.assert_called_once_with(b"%PDF-1.4 fake")
        assert "Data is stored in the EU." in mock_llm.call_args.args[0]

    @patch("vendorwatch.services.doc_extractor.call_llm")
    def test_http_error(self, mock_llm):
        """Fetch failures give ok=False without calling the LLM"""
        extractor = LLMDocumentExtractor(client=_client(status=404))
        result = extractor.extract("https://acme.com/terms")
        assert not result.ok
        assert result.error
        mock_llm.assert_not_called()

    @patch("vendorwatch.services.doc_extractor.call_llm")
    def test_empty_document(self, mock_llm):
        """An empty page gives ok=False"""
        extractor = LLMDocumentExtractor(client=_client(body=b"<html><body></body></html>"))
        result = extractor.extract("https://acme.com/terms")
        assert not result.ok
        assert result.error == "empty document"
        mock_llm.assert_not_called()

    @patch("vendorwatch.services.doc_extractor.call_llm", return_value={"structured": None, "text": "sorry"})
    def test_no_structured_output(self, mock_llm):
        """Unstructured model replies give ok=False"""
        extractor = LLMDocumentExtractor(client=_client())
        result = extractor.extract("https://acme.com/terms")
        assert not result.ok
        assert result.error == "no structured output"

    @patch("vendorwatch.services.doc_extractor.call_llm", side_effect=RuntimeError("No LLM provider configured"))
    def test_missing_llm_key_propagates(self, mock_llm):
        """Missing LLM configuration is not swallowed"""
        extractor = LLMDocumentExtractor(client=_client())
        with pytest.raises(RuntimeError):
            extractor.extract("https://acme.com/terms")
