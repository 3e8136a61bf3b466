from __future__ import annotations

import datetime as dt

from expense_tracker.core.analytics import (
    ON_TRACK,
    OVER_LIMIT,
    category_totals,
    compute_analytics,
    daily_series,
    month_bounds,
    monthly_total,
)
from expense_tracker.core.models import CATEGORIES, GENERAL_CATEGORY

from tests.helpers import make_record

NOW = dt.datetime(2026, 10, 19, 15, 30)


def test_month_bounds_inclusive():
    assert month_bounds(NOW) == (dt.date(2026, 10, 1), dt.date(2026, 10, 31))
    assert month_bounds(dt.datetime(2024, 2, 10)) == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))


def test_monthly_total_excludes_other_months():
    records = [
        make_record(10, "2026-10-01"),
        make_record(20, "2026-10-19"),
        make_record(30, "2026-10-31"),
        make_record(100, "2026-09-30"),
    ]
    assert monthly_total(records, NOW) == 60


def test_monthly_total_skips_unparseable_dates():
    records = [make_record(5, "2026-10-02"), make_record(7, "not a date"), make_record(9, "")]
    assert monthly_total(records, NOW) == 5


def test_monthly_total_ignores_same_month_other_year():
    assert monthly_total([make_record(42, "2025-10-19")], NOW) == 0


def test_category_totals_first_seen_order():
    records = [
        make_record(5, "2026-10-19", category="Transport"),
        make_record(10, "2026-10-18", category="Food"),
        make_record(2.5, "2026-10-17", category="Transport"),
        make_record(1, "bad-date", category=GENERAL_CATEGORY),
    ]

    totals = category_totals(records)

    assert list(totals) == ["Transport", "Food", GENERAL_CATEGORY]
    assert totals == {"Transport": 7.5, "Food": 10, GENERAL_CATEGORY: 1}


def test_daily_series_sorted_summed_and_labelled():
    records = [
        make_record(4, "2026-10-19"),
        make_record(1, "2026-10-17"),
        make_record(2, "2026-10-19"),
        make_record(99, "garbage"),
    ]

    series = daily_series(records)

    assert [(p.label, p.amount) for p in series] == [("Oct 17", 1), ("Oct 19", 6)]
    assert series[0].day == dt.date(2026, 10, 17)


def test_daily_series_keeps_latest_seven_days():
    records = [make_record(i, f"2026-10-{i:02d}") for i in range(1, 11)]

    series = daily_series(records)

    assert len(series) == 7
    assert [p.day.day for p in series] == [4, 5, 6, 7, 8, 9, 10]


def test_daily_series_does_not_merge_same_label_across_years():
    series = daily_series([make_record(1, "2025-10-19"), make_record(2, "2026-10-19")])
    assert [p.amount for p in series] == [1, 2]


def test_compute_analytics_dashboard_fields():
    records = [make_record(float(i * 10), f"2026-10-{i:02d}", record_id=str(i)) for i in range(1, 7)]
    records.append(make_record(100, "2026-09-01", category="Health", record_id="old"))

    view = compute_analytics(records, now=NOW, budget=150)

    assert view.monthly_total == 210
    assert view.receipt_count == 7
    assert view.daily_average == 7.0
    assert view.budget_status == OVER_LIMIT
    assert view.reporting_period == "October 2026"
    assert [r.id for r in view.recent] == ["1", "2", "3", "4", "5"]
    assert view.category_totals == {"Food": 210, "Health": 100}
    assert abs(sum(view.category_shares.values()) - 1.0) < 1e-9


def test_compute_analytics_empty_store():
    view = compute_analytics([], now=NOW)

    assert view.monthly_total == 0
    assert view.category_totals == {}
    assert view.daily_series == []
    assert view.budget_status == ON_TRACK
    assert view.recent == []


def test_compute_analytics_is_idempotent():
    records = [
        make_record(12.5, "2026-10-03", category="Shopping"),
        make_record(3, "2026-10-03", category=GENERAL_CATEGORY),
        make_record(8, "2026-08-14", category="Entertainment"),
    ]

    assert compute_analytics(records, now=NOW) == compute_analytics(records, now=NOW)


def test_category_keys_stay_within_known_set():
    records = [make_record(1, "2026-10-01", category=c) for c in CATEGORIES + [GENERAL_CATEGORY]]
    view = compute_analytics(records, now=NOW)
    assert set(view.category_totals) <= set(CATEGORIES) | {GENERAL_CATEGORY}
    assert len(view.daily_series) <= 7
