"""
Utility functions and constants for receipt processing.
"""

import hashlib
import re
from typing import List, Optional

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}
PDF_EXTS = {".pdf"}
TEXT_EXTS = {".txt"}

# Pattern constants for parsing
TOTAL_LABELS = ("TOTAL", "AMOUNT", "DUE", "BALANCE", "NET")

TOTAL_PATTERN = (
    r"(?:" + "|".join(TOTAL_LABELS) + r")"
    r"[\s:]*[$€£]?\s*"
    r"(\d+[.,]\d{2})(?!\d)"
)

DATE_PATTERNS = [
    r"(?<!\d)(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?!\d)",      # YYYY-MM-DD
    r"(?<!\d)(\d{1,2})[-/.](\d{1,2})[-/.](\d{2,4})(?!\d)",    # DD-MM-YYYY (or MM-DD-YYYY, resolved later)
]

# Lines checked for the merchant name, and the minimum trimmed length
MERCHANT_SCAN_LINES = 3
MERCHANT_MIN_LENGTH = 4


def normalize_lines(text: str) -> List[str]:
    """Split OCR text into trimmed lines, keeping blank lines in place."""
    if not text:
        return []
    return [ln.strip() for ln in text.split("\n")]


def slugify(s: str) -> str:
    """Convert string to filesystem-safe slug."""
    return re.sub(r"[^a-z0-9]+", "-", s.lower()).strip("-")


def normalize_amount(s: str) -> Optional[float]:
    """Normalize a two-decimal amount using either '.' or ',' as separator."""
    if not s:
        return None
    s = s.strip().replace(" ", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def sha1_text(text: str) -> str:
    """SHA1 of receipt text, used as the classification cache key."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def money_fmt(v: Optional[float]) -> str:
    """Format amount as currency."""
    return f"${v:,.2f}" if v is not None else ""
