"""
Dashboard analytics recomputed from the expense store on every read.
"""

import calendar
import datetime as dt
from typing import Dict, List, Optional, Sequence

from .models import AnalyticsView, DailyPoint, ExpenseRecord

DAILY_SERIES_DAYS = 7
RECENT_COUNT = 5
DEFAULT_BUDGET = 1000.0
# Daily average divides the month's spend by a fixed 30 days
DAILY_AVERAGE_DAYS = 30
DAY_LABEL_FORMAT = "%b %d"

OVER_LIMIT = "Over Limit"
ON_TRACK = "On Track"


def parse_record_date(value) -> Optional[dt.date]:
    """Calendar date of a stored record, or None when unparseable."""
    if not isinstance(value, str):
        return None
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        return None


def month_bounds(now: dt.datetime):
    """First and last day of the calendar month containing ``now``."""
    last_day = calendar.monthrange(now.year, now.month)[1]
    return dt.date(now.year, now.month, 1), dt.date(now.year, now.month, last_day)


def monthly_total(records: Sequence[ExpenseRecord], now: dt.datetime) -> float:
    """Sum of totals dated inside the current month, bounds inclusive."""
    start, end = month_bounds(now)
    total = 0.0
    for r in records:
        d = parse_record_date(r.date)
        if d is not None and start <= d <= end:
            total += r.total
    return round(total, 2)


def category_totals(records: Sequence[ExpenseRecord]) -> Dict[str, float]:
    """Totals per category, keyed in order of first appearance."""
    totals: Dict[str, float] = {}
    for r in records:
        totals[r.category] = totals.get(r.category, 0.0) + r.total
    return {cat: round(amt, 2) for cat, amt in totals.items()}


def daily_series(records: Sequence[ExpenseRecord],
                 days: int = DAILY_SERIES_DAYS) -> List[DailyPoint]:
    """Same-day totals in chronological order, limited to the latest ``days`` days with data."""
    dated = []
    for r in records:
        d = parse_record_date(r.date)
        if d is not None:
            dated.append((d, r.total))
    dated.sort(key=lambda x: x[0])

    grouped: Dict[dt.date, float] = {}
    for d, amount in dated:
        grouped[d] = grouped.get(d, 0.0) + amount

    points = [
        DailyPoint(day=d, label=d.strftime(DAY_LABEL_FORMAT), amount=round(amt, 2))
        for d, amt in grouped.items()
    ]
    return points[-days:] if days > 0 else []


def compute_analytics(records: Sequence[ExpenseRecord],
                      now: Optional[dt.datetime] = None,
                      budget: float = DEFAULT_BUDGET) -> AnalyticsView:
    """
    Derive every dashboard metric from a store snapshot.

    Args:
        records: Store contents, newest first
        now: Reference time for the current month (defaults to now)
        budget: Monthly budget compared against the month's spend

    Returns:
        AnalyticsView; identical inputs give identical output
    """
    now = now or dt.datetime.now()
    records = list(records)

    month_total = monthly_total(records, now)
    by_category = category_totals(records)
    all_time = sum(by_category.values())
    shares = {
        cat: (amt / all_time if all_time > 0 else 0.0)
        for cat, amt in by_category.items()
    }

    return AnalyticsView(
        monthly_total=month_total,
        category_totals=by_category,
        daily_series=daily_series(records),
        receipt_count=len(records),
        daily_average=round(month_total / DAILY_AVERAGE_DAYS, 2),
        budget=budget,
        budget_status=OVER_LIMIT if month_total > budget else ON_TRACK,
        reporting_period=now.strftime("%B %Y"),
        category_shares=shares,
        recent=records[:RECENT_COUNT],
    )
