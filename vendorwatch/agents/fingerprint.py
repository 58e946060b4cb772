# vendorwatch/agents/fingerprint.py
"""
Content fingerprinting for change detection.

The fingerprint is a SHA-256 over normalized text, so whitespace-only
differences between two fetches of the same page never register as a change.
"""

from __future__ import annotations
import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Trim and collapse every whitespace run (newlines included) to one space."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.strip())


def fingerprint(text: str) -> str:
    h = hashlib.sha256()
    h.update(normalize_text(text).encode("utf-8"))
    return h.hexdigest()
