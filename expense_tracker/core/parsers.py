"""
Parsers for extracting information from receipt text.
"""

import re
import datetime as dt
from typing import Optional, List, Sequence

from .models import ExtractedFields, UNKNOWN_MERCHANT
from .utils import (DATE_PATTERNS, TOTAL_PATTERN, MERCHANT_SCAN_LINES,
                    MERCHANT_MIN_LENGTH, normalize_amount, normalize_lines)

_TOTAL_RE = re.compile(TOTAL_PATTERN, flags=re.IGNORECASE)
_DATE_RES = [re.compile(p) for p in DATE_PATTERNS]

TOTAL_POLICIES = ("last", "first")


def normalize_date(first: str, second: str, third: str) -> Optional[str]:
    """
    Canonicalize a three-part date token to YYYY-MM-DD.

    A 4-digit first group is read as year-month-day. A 4-digit third group is
    read as day-month-year; when that is not a real calendar date but the
    month-day reading is (e.g. 12/31/2023), the two are swapped. Any other
    shape, or a token invalid under every reading, returns None.
    """
    if len(first) == 4:
        candidates = [(first, second, third)]
    elif len(third) == 4:
        candidates = [(third, second, first), (third, first, second)]
    else:
        return None

    for y, mo, d in candidates:
        try:
            return dt.date(int(y), int(mo), int(d)).isoformat()
        except ValueError:
            continue
    return None


def find_date_token(line: str) -> Optional[str]:
    """Return the canonical date of the leftmost usable token in a line."""
    matches = []
    for rx in _DATE_RES:
        matches.extend(rx.finditer(line))
    for m in sorted(matches, key=lambda m: m.start()):
        date = normalize_date(*m.groups())
        if date:
            return date
    return None


def parse_date(lines: Sequence[str], default: Optional[str] = None) -> Optional[str]:
    """First usable date token in reading order, else ``default``."""
    for ln in lines:
        date = find_date_token(ln)
        if date:
            return date
    return default


def parse_total(lines: Sequence[str], policy: str = "last") -> float:
    """
    Extract the labeled total amount.

    Receipts usually print a subtotal before the final total, so by default
    the last labeled line wins. ``policy="first"`` keeps the first instead.
    """
    if policy not in TOTAL_POLICIES:
        raise ValueError(f"Unknown total policy: {policy}")

    total = 0.0
    for ln in lines:
        m = _TOTAL_RE.search(ln)
        if not m:
            continue
        val = normalize_amount(m.group(1))
        if val is None:
            continue
        total = val
        if policy == "first":
            break
    return total


def parse_merchant(lines: Sequence[str]) -> str:
    """First line near the top long enough to be a business name."""
    for ln in lines[:MERCHANT_SCAN_LINES]:
        candidate = ln.strip()
        if len(candidate) >= MERCHANT_MIN_LENGTH:
            return candidate
    return UNKNOWN_MERCHANT


def extract_fields(text: str, capture_date: Optional[str] = None,
                   total_policy: str = "last",
                   lines: Optional[List[str]] = None) -> ExtractedFields:
    """
    Run every heuristic parser over the receipt text.

    Args:
        text: Raw OCR text
        capture_date: Fallback date (YYYY-MM-DD), defaults to today
        total_policy: "last" or "first" labeled total wins
        lines: Pre-normalized lines (computed from text when omitted)

    Returns:
        ExtractedFields with defaults for anything not found
    """
    if lines is None:
        lines = normalize_lines(text)
    fallback = capture_date or dt.date.today().isoformat()
    return ExtractedFields(
        merchant=parse_merchant(lines),
        total=parse_total(lines, policy=total_policy),
        date=parse_date(lines, default=fallback),
        raw_text=text,
    )
