"""
Receipt Expense Tracker

Turns receipt scans into structured expense records (merchant, date, total,
category) and derives monthly, category and daily spending analytics.
"""

__version__ = "1.0.0"
__author__ = "Receipt Expense Tracker Contributors"

from expense_tracker.core.models import Category, ExpenseRecord

__all__ = ["Category", "ExpenseRecord"]
