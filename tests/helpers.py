"""Builders shared by the test modules."""

from __future__ import annotations

from expense_tracker.core.models import ExpenseRecord


def make_record(
    total: float,
    date: str,
    category: str = "Food",
    merchant: str = "Corner Cafe",
    record_id: str | None = None,
) -> ExpenseRecord:
    return ExpenseRecord(
        id=record_id or f"{merchant}-{date}-{total}",
        merchant=merchant,
        total=total,
        date=date,
        category=category,
        raw_text=f"{merchant}\nTOTAL {total:.2f}",
    )
