"""
Merge heuristic and LLM fields into the single record persisted per capture.
"""

import uuid
from typing import Optional

from .models import (CATEGORIES, GENERAL_CATEGORY, ClassifiedFields,
                     ExpenseRecord, ExtractedFields)


def new_record_id() -> str:
    return uuid.uuid4().hex


def reconcile(extracted: ExtractedFields,
              classified: Optional[ClassifiedFields] = None) -> ExpenseRecord:
    """
    Build the final record for a capture.

    Each classified field wins when present; otherwise the extracted value is
    used. Category has no heuristic source and falls back to "General". A
    category outside the fixed set is treated as missing.
    """
    classified = classified or ClassifiedFields()

    merchant = (classified.merchant or "").strip() or extracted.merchant

    total = classified.total
    if total is None or total < 0:
        total = extracted.total

    date = classified.date or extracted.date

    category = classified.category if classified.category in CATEGORIES else GENERAL_CATEGORY

    return ExpenseRecord(
        id=new_record_id(),
        merchant=merchant,
        total=round(max(float(total), 0.0), 2),
        date=date,
        category=category,
        raw_text=extracted.raw_text,
    )
