import hashlib

from vendorwatch.agents.fingerprint import fingerprint, normalize_text


class TestNormalizeText:
    """Whitespace normalization before hashing"""

    def test_trims_and_collapses_spaces(self):
        """Leading/trailing whitespace is removed and runs become one space"""
        assert normalize_text("  Terms   of    Service  ") == "Terms of Service"

    def test_collapses_newlines_and_tabs(self):
        """Tabs and newline runs collapse like any other whitespace"""
        assert normalize_text("Pricing\n\n\n\tPro plan") == "Pricing Pro plan"

    def test_empty_input(self):
        """Empty or None input normalizes to an empty string"""
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_no_newlines_survive(self):
        """Line breaks are flattened, so reflowed text hashes the same"""
        normalized = normalize_text("Terms\r\n\r\nof\nService\n")
        assert "\n" not in normalized
        assert normalized == "Terms of Service"


class TestFingerprint:
    """SHA-256 fingerprint of normalized content"""

    def test_whitespace_invariance(self):
        """Texts differing only in whitespace share a fingerprint"""
        a = "Liability is capped at fees paid.\n\nSLA: 99.9% uptime"
        b = "  Liability is capped   at fees paid. SLA:\t99.9%   uptime\n"
        assert fingerprint(a) == fingerprint(b)

    def test_content_change_changes_fingerprint(self):
        """A real wording change produces a different fingerprint"""
        assert fingerprint("SLA: 99.9% uptime") != fingerprint("SLA: 99.5% uptime")

    def test_is_sha256_hex_of_normalized_text(self):
        """Fingerprint equals hex SHA-256 of the normalized text"""
        text = "  Data retention:  30 days "
        expected = hashlib.sha256("Data retention: 30 days".encode("utf-8")).hexdigest()
        assert fingerprint(text) == expected
        assert len(fingerprint(text)) == 64

    def test_deterministic(self):
        """Same input, same output"""
        assert fingerprint("abc") == fingerprint("abc")
