"""
CSV export and PDF dashboard summary.
"""

import csv
import calendar
import datetime as dt
from collections import defaultdict
from pathlib import Path
from typing import List

from .analytics import parse_record_date
from .models import AnalyticsView, ExpenseRecord
from .utils import money_fmt

CSV_FIELDS = ["id", "date", "merchant", "total", "category"]


def write_csv(records: List[ExpenseRecord], out_csv: Path):
    """Write expense records to CSV file, newest first."""
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        for r in records:
            row = r.to_dict()
            w.writerow({k: row.get(k) for k in CSV_FIELDS})


def format_dashboard(view: AnalyticsView) -> List[str]:
    """Plain-text dashboard lines for the terminal."""
    lines = [
        f"Reporting period: {view.reporting_period}",
        f"Monthly spending: {money_fmt(view.monthly_total)}",
        f"Total receipts:   {view.receipt_count}",
        f"Daily average:    {money_fmt(view.daily_average)}",
        f"Budget status:    {view.budget_status} ({money_fmt(view.budget)})",
        "",
        "Category totals:",
    ]
    if view.category_totals:
        for cat, amt in view.category_totals.items():
            share = view.category_shares.get(cat, 0.0) * 100
            lines.append(f"  {cat:<14} {money_fmt(amt):>12}  {share:5.1f}%")
    else:
        lines.append("  (no receipts yet)")

    lines.append("")
    lines.append("Daily spend:")
    for point in view.daily_series:
        lines.append(f"  {point.label}  {money_fmt(point.amount):>12}")

    lines.append("")
    lines.append("Recent captures:")
    for r in view.recent:
        lines.append(f"  {r.date}  {r.merchant[:28]:<28} {r.category:<14} {money_fmt(r.total):>12}")
    return lines


def _month_key(record: ExpenseRecord) -> str:
    d = parse_record_date(record.date)
    return d.strftime("%Y-%m") if d else "Unknown"


def _month_display(year_month: str) -> str:
    if year_month == "Unknown":
        return year_month
    year, month = year_month.split("-")
    return f"{calendar.month_name[int(month)]} {year}"


def build_summary_pdf(view: AnalyticsView, records: List[ExpenseRecord], out_pdf: Path,
                      title: str = "Expense Summary"):
    """
    Build a summary PDF: dashboard stats, category totals, daily spend and
    line items grouped by month.

    Args:
        view: Analytics computed from the same records
        records: Store contents, newest first
        out_pdf: Output PDF path
        title: Report title
    """
    from reportlab.lib.pagesizes import letter
    from reportlab.pdfgen import canvas
    from reportlab.lib.units import inch

    out_pdf.parent.mkdir(parents=True, exist_ok=True)

    monthly_data = defaultdict(list)
    monthly_totals = defaultdict(float)
    for r in records:
        key = _month_key(r)
        monthly_data[key].append(r)
        monthly_totals[key] += r.total

    c = canvas.Canvas(out_pdf.as_posix(), pagesize=letter)
    width, height = letter

    def new_page():
        c.showPage()
        return height - 1 * inch

    # Title page
    y = height - 1 * inch
    c.setFont("Helvetica-Bold", 16)
    c.drawString(1 * inch, y, title)
    y -= 0.3 * inch
    c.setFont("Helvetica", 10)
    timestamp = dt.datetime.now().isoformat(timespec='seconds')
    c.drawString(1 * inch, y, f"Generated: {timestamp}")
    y -= 0.2 * inch
    c.drawString(1 * inch, y, f"Reporting period: {view.reporting_period}")
    y -= 0.4 * inch

    # Stats
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Overview")
    y -= 0.25 * inch
    c.setFont("Helvetica", 10)
    for label, value in [
        ("Monthly spending", money_fmt(view.monthly_total)),
        ("Total receipts", str(view.receipt_count)),
        ("Daily average", money_fmt(view.daily_average)),
        ("Budget status", f"{view.budget_status} (budget {money_fmt(view.budget)})"),
    ]:
        c.drawString(1.1 * inch, y, f"{label}: {value}")
        y -= 0.2 * inch

    # Category totals
    y -= 0.2 * inch
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Category Totals")
    y -= 0.25 * inch
    c.setFont("Helvetica", 10)
    for cat, amt in view.category_totals.items():
        share = view.category_shares.get(cat, 0.0) * 100
        c.drawString(1.1 * inch, y, f"{cat}: {money_fmt(amt)} ({share:.1f}%)")
        y -= 0.2 * inch
        if y < 1.2 * inch:
            y = new_page()
            c.setFont("Helvetica", 10)

    # Daily spend
    y -= 0.2 * inch
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Daily Spend")
    y -= 0.25 * inch
    c.setFont("Helvetica", 10)
    for point in view.daily_series:
        c.drawString(1.1 * inch, y, f"{point.label}: {money_fmt(point.amount)}")
        y -= 0.2 * inch
        if y < 1.2 * inch:
            y = new_page()
            c.setFont("Helvetica", 10)

    # Line items grouped by month, latest month first, undated last
    month_order = sorted(monthly_data.keys(), key=lambda k: (k != "Unknown", k), reverse=True)
    for year_month in month_order:
        month_rows = sorted(monthly_data[year_month], key=lambda x: (x.date, x.merchant))
        display = _month_display(year_month)

        y = new_page()
        c.setFont("Helvetica-Bold", 14)
        c.drawString(1 * inch, y, display)
        c.setFont("Helvetica", 10)
        c.drawString(1 * inch, y - 0.2 * inch, f"Total: {money_fmt(monthly_totals[year_month])}")
        y -= 0.5 * inch

        # Column headers
        c.setFont("Helvetica-Bold", 9)
        c.drawString(1.00 * inch, y, "Date")
        c.drawString(2.10 * inch, y, "Merchant")
        c.drawString(4.30 * inch, y, "Category")
        c.drawRightString(7.50 * inch, y, "Total")
        y -= 0.15 * inch
        c.line(1.0 * inch, y, 7.6 * inch, y)
        y -= 0.15 * inch

        c.setFont("Helvetica", 9)
        for r in month_rows:
            c.drawString(1.00 * inch, y, r.date)
            c.drawString(2.10 * inch, y, r.merchant[:28])
            c.drawString(4.30 * inch, y, r.category[:18])
            c.drawRightString(7.50 * inch, y, money_fmt(r.total))
            y -= 0.18 * inch

            if y < 0.8 * inch:
                y = new_page()
                c.setFont("Helvetica-Bold", 12)
                c.drawString(1 * inch, y, f"{display} (cont.)")
                y -= 0.3 * inch
                c.setFont("Helvetica", 9)

    c.showPage()
    c.save()
