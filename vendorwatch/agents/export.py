# vendorwatch/agents/export.py
"""
vendorwatch/agents/export.py

Snapshot export formats.

Primary APIs:
    to_csv(vendor, snapshot) -> str        rows of field,label,value (metadata rows first)
    to_markdown(vendor, snapshot) -> str   report with one section per populated field
    write_exports(out_dir, vendor, snapshot, events=None) -> Dict[str, str]
        writes <vendor_id>.csv, <vendor_id>.md and (if events) <vendor_id>_events.json,
        returning artifact name -> path.
"""

from __future__ import annotations
import csv
import io
import json
import logging
import os
from typing import Dict, List, Optional

from vendorwatch.agents.findings import FIELD_LABELS, group_findings_by_category
from vendorwatch.models import RiskEvent, Snapshot, Vendor

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_DASH = "-"


def _snapshot_date(snapshot: Optional[Snapshot]) -> str:
    return snapshot.created_at.isoformat() if snapshot else ""


def to_csv(vendor: Vendor, snapshot: Optional[Snapshot]) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    w.writerow(["field", "label", "value"])
    w.writerow(["metadata", "Vendor", vendor.name])
    w.writerow(["metadata", "Website", vendor.website])
    w.writerow(["metadata", "Snapshot date", _snapshot_date(snapshot)])
    w.writerow(["metadata", "Content hash", snapshot.content_hash if snapshot else ""])
    data = snapshot.structured_data if snapshot else None
    if data is not None:
        for key in data.populated_fields():
            for fact in data.facts(key):
                w.writerow([key, FIELD_LABELS[key], fact])
    return buf.getvalue().rstrip("\n")


def to_markdown(vendor: Vendor, snapshot: Optional[Snapshot], events: Optional[List[RiskEvent]] = None) -> str:
    lines = [
        f"# VendorWatch: {vendor.name}",
        "",
        f"- **Website:** {vendor.website or _DASH}",
        f"- **Snapshot date:** {_snapshot_date(snapshot) or _DASH}",
        f"- **Content hash:** {(snapshot.content_hash if snapshot else '') or _DASH}",
        "",
        "## Structured Data",
        "",
    ]
    data = snapshot.structured_data if snapshot else None
    if data is None or data.is_empty():
        lines.append("*No structured data extracted.*")
        lines.append("")
    else:
        for key in data.populated_fields():
            lines.append(f"### {FIELD_LABELS[key]}")
            lines.append("")
            lines.extend(f"- {fact}" for fact in data.facts(key))
            lines.append("")

    latest = events[-1] if events else None
    if latest is not None and latest.risk_findings:
        lines.append("## Risk Findings")
        lines.append("")
        for category, items in group_findings_by_category(latest.risk_findings).items():
            lines.append(f"### {category}")
            lines.append("")
            lines.extend(f"- {f.finding}" for f in items)
            lines.append("")

    return "\n".join(lines).strip()


def write_exports(out_dir: str, vendor: Vendor, snapshot: Optional[Snapshot],
                  events: Optional[List[RiskEvent]] = None) -> Dict[str, str]:
    os.makedirs(out_dir, exist_ok=True)
    paths = {
        "csv": os.path.join(out_dir, f"{vendor.id}.csv"),
        "markdown": os.path.join(out_dir, f"{vendor.id}.md"),
    }
    with open(paths["csv"], "w", newline="", encoding="utf-8") as f:
        f.write(to_csv(vendor, snapshot))
    with open(paths["markdown"], "w", encoding="utf-8") as f:
        f.write(to_markdown(vendor, snapshot, events))
    if events:
        paths["events"] = os.path.join(out_dir, f"{vendor.id}_events.json")
        with open(paths["events"], "w", encoding="utf-8") as f:
            json.dump([e.model_dump(mode="json") for e in events], f, indent=2, ensure_ascii=False)
    logger.info("Wrote %d export artifacts for %s to %s", len(paths), vendor.id, out_dir)
    return paths
