import csv
import io
import json
import os
from datetime import datetime, timezone

from vendorwatch.agents.export import to_csv, to_markdown, write_exports
from vendorwatch.models import RiskEvent, RiskFinding, Snapshot, StructuredData, Vendor

VENDOR = Vendor(id="acme", name="Acme", website="https://acme.com",
                created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
SNAPSHOT = Snapshot(
    vendor_id="acme",
    content_hash="abc123",
    extracted_text="...",
    structured_data=StructuredData(
        liability_clauses=['Capped at fees paid, "12 months"'],
        compliance_references=["SOC 2 Type II", "ISO 27001"],
    ),
    created_at=datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc),
)


class TestCsv:
    """CSV export"""

    def test_rows(self):
        """Metadata rows come first, then one row per fact"""
        rows = list(csv.reader(io.StringIO(to_csv(VENDOR, SNAPSHOT))))
        assert rows[0] == ["field", "label", "value"]
        assert rows[1] == ["metadata", "Vendor", "Acme"]
        assert rows[4] == ["metadata", "Content hash", "abc123"]
        facts = rows[5:]
        assert [r[0] for r in facts] == ["liability_clauses", "compliance_references", "compliance_references"]
        assert facts[0][2] == 'Capped at fees paid, "12 months"'

    def test_no_snapshot(self):
        """Without a snapshot only metadata is written"""
        rows = list(csv.reader(io.StringIO(to_csv(VENDOR, None))))
        assert len(rows) == 5
        assert rows[3] == ["metadata", "Snapshot date", ""]


class TestMarkdown:
    """Markdown export"""

    def test_sections(self):
        """Populated fields become sections"""
        md = to_markdown(VENDOR, SNAPSHOT)
        assert md.startswith("# VendorWatch: Acme")
        assert "- **Content hash:** abc123" in md
        assert "- SOC 2 Type II" in md
        assert "## Risk Findings" not in md

    def test_empty_structured_data(self):
        """Missing data is called out and metadata falls back to a dash"""
        md = to_markdown(VENDOR, None)
        assert "*No structured data extracted.*" in md
        assert "- **Content hash:** -" in md

    def test_findings_from_latest_event(self):
        """Findings of the most recent event are grouped by category"""
        old = RiskEvent(vendor_id="acme", severity="low", type="operational", summary="s", recommended_action="a",
                        risk_findings=[RiskFinding(category="Financial", finding="Old finding")])
        new = RiskEvent(vendor_id="acme", severity="medium", type="legal", summary="s", recommended_action="a",
                        risk_findings=[RiskFinding(category="Legal", finding="Liability: capped")])
        md = to_markdown(VENDOR, SNAPSHOT, [old, new])
        assert "## Risk Findings" in md
        assert "### Legal" in md
        assert "- Liability: capped" in md
        assert "Old finding" not in md


class TestWriteExports:
    """Files on disk"""

    def test_writes_all_artifacts(self, tmp_path):
        """CSV, markdown and events JSON are written under the vendor id"""
        event = RiskEvent(vendor_id="acme", severity="high", type="security", summary="s", recommended_action="a")
        paths = write_exports(str(tmp_path / "out"), VENDOR, SNAPSHOT, [event])
        assert set(paths) == {"csv", "markdown", "events"}
        assert os.path.basename(paths["csv"]) == "acme.csv"
        with open(paths["events"], encoding="utf-8") as f:
            data = json.load(f)
        assert data[0]["severity"] == "high"

    def test_no_events_file_without_events(self, tmp_path):
        """Events JSON is skipped when there are no events"""
        paths = write_exports(str(tmp_path), VENDOR, SNAPSHOT)
        assert "events" not in paths
        assert os.path.exists(paths["markdown"])
