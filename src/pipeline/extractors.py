# src/pipeline/extractors.py
"""Keyword-based extraction of structured fields from stage output text.

All extractors work line by line on the model's raw text and never raise.
"""

from __future__ import annotations

import re

LIST_MARKER = re.compile(r"^[\d\-.\s*#]*")
MIN_ITEM_LENGTH = 10
DEFAULT_RISK_LEVEL = 2

ISSUE_KEYWORDS = ("issue", "problem", "defect", "flaw", "lack")
RECOMMENDATION_KEYWORDS = ("recommend", "suggest", "improve", "optimi")
INCONSISTENCY_KEYWORDS = ("inconsisten", "contradict", "conflict")
CORRECTION_KEYWORDS = ("correct", "adjust", "revise", "modif")
MITIGATION_KEYWORDS = ("mitigat", "countermeasure", "prevent")

# Checked in this order on each line.
_RISK_WORDS = (
    (re.compile(r"\bhigh\b", re.IGNORECASE), 3),
    (re.compile(r"\bmedium\b", re.IGNORECASE), 2),
    (re.compile(r"\blow\b", re.IGNORECASE), 1),
)


def clean_line(line: str) -> str:
    """Strip leading list markers (digits, dashes, dots, bullets, headings)."""
    return LIST_MARKER.sub("", line).strip()


def extract_summary(text: str, max_lines: int = 5) -> str:
    """First ``max_lines`` non-blank lines, newline-joined."""
    lines = [line for line in text.splitlines() if line.strip()]
    return "\n".join(lines[:max_lines])


def extract_keyword_lines(text: str, keywords: tuple[str, ...], limit: int) -> list[str]:
    """Cleaned lines mentioning any keyword, case-insensitive, at most ``limit``."""
    found: list[str] = []
    for line in text.splitlines():
        lowered = line.lower()
        if not any(k in lowered for k in keywords):
            continue
        cleaned = clean_line(line)
        if len(cleaned) > MIN_ITEM_LENGTH:
            found.append(cleaned)
            if len(found) >= limit:
                break
    return found


def extract_issues(text: str) -> list[str]:
    return extract_keyword_lines(text, ISSUE_KEYWORDS, 10)


def extract_recommendations(text: str) -> list[str]:
    return extract_keyword_lines(text, RECOMMENDATION_KEYWORDS, 10)


def extract_inconsistencies(text: str) -> list[str]:
    return extract_keyword_lines(text, INCONSISTENCY_KEYWORDS, 10)


def extract_corrections(text: str) -> list[str]:
    return extract_keyword_lines(text, CORRECTION_KEYWORDS, 10)


def extract_mitigation(text: str) -> list[str]:
    return extract_keyword_lines(text, MITIGATION_KEYWORDS, 5)


def extract_risk_level(text: str) -> int:
    """1 low, 2 medium, 3 high, from the first line naming a level."""
    for line in text.splitlines():
        for pattern, level in _RISK_WORDS:
            if pattern.search(line):
                return level
    return DEFAULT_RISK_LEVEL
