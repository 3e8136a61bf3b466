"""
Data models for receipt capture and expense analytics.
"""

import datetime as dt
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional


class Category(str, Enum):
    """Closed set of spending categories a classified receipt may carry."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    HEALTH = "Health"


CATEGORIES = [c.value for c in Category]

# Used when no classification is available
GENERAL_CATEGORY = "General"

UNKNOWN_MERCHANT = "Unknown Merchant"


@dataclass(frozen=True)
class RawCapture:
    """OCR output for a single capture."""
    text: str
    captured_at: dt.datetime = field(default_factory=dt.datetime.now)

    @property
    def capture_date(self) -> str:
        return self.captured_at.date().isoformat()


@dataclass(frozen=True)
class ExtractedFields:
    """Best-effort fields from the heuristic parsers."""
    merchant: str
    total: float
    date: str
    raw_text: str


@dataclass(frozen=True)
class ClassifiedFields:
    """Validated fields returned by the language model. Any may be None."""
    merchant: Optional[str] = None
    total: Optional[float] = None
    date: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ExpenseRecord:
    """Represents a reconciled, persisted expense."""
    id: str
    merchant: str
    total: float
    date: str
    category: str
    raw_text: str

    def to_dict(self) -> Dict:
        """Convert to the persisted JSON layout."""
        return {
            "id": self.id,
            "merchant": self.merchant,
            "total": self.total,
            "date": self.date,
            "category": self.category,
            "rawText": self.raw_text,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ExpenseRecord":
        """
        Build a record from its persisted layout.

        Raises KeyError/TypeError/ValueError when required keys are missing
        or the total is not a finite, non-negative number. A category outside
        the fixed set is read as "General". The date is kept as stored;
        readers treat unparseable dates as absent.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        total = float(data.get("total") or 0.0)
        if not math.isfinite(total) or total < 0:
            raise ValueError(f"invalid total: {data.get('total')!r}")
        category = data.get("category")
        if category not in CATEGORIES:
            category = GENERAL_CATEGORY
        return cls(
            id=str(data["id"]),
            merchant=str(data.get("merchant") or UNKNOWN_MERCHANT),
            total=total,
            date=str(data.get("date") or ""),
            category=category,
            raw_text=str(data.get("rawText") or ""),
        )


@dataclass(frozen=True)
class DailyPoint:
    """Spend summed over one calendar day."""
    day: dt.date
    label: str
    amount: float


@dataclass
class AnalyticsView:
    """Dashboard metrics derived from the store on every read."""
    monthly_total: float
    category_totals: Dict[str, float]
    daily_series: List[DailyPoint]
    receipt_count: int
    daily_average: float
    budget: float
    budget_status: str
    reporting_period: str
    category_shares: Dict[str, float]
    recent: List[ExpenseRecord]
