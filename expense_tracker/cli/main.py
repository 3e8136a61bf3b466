#!/usr/bin/env python3
"""
Main CLI entrypoint for the receipt expense tracker.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from expense_tracker.core.analytics import DEFAULT_BUDGET, compute_analytics
from expense_tracker.core.database import ExpenseStore
from expense_tracker.core.llm import PROVIDERS
from expense_tracker.core.processor import (CapturePipeline, DEFAULT_LLM_TIMEOUT,
                                            capture_all, discover_files)
from expense_tracker.core.reporting import build_summary_pdf, format_dashboard, write_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Capture receipts into expense records and show spending analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Capture every receipt waiting in ./incoming
  expense-tracker capture

  # Capture specific files with Groq instead of OpenAI
  expense-tracker capture scan1.jpg scan2.pdf --llm-provider groq

  # Capture already-OCR'd text, regex parsing only
  expense-tracker capture receipt.txt --no-llm

  # Show the dashboard with a custom budget
  expense-tracker dashboard --budget 1500

  # Export CSV and PDF summary
  expense-tracker export --output ./reports
        """
    )
    parser.add_argument("--db", default=os.getenv("EXPENSES_DB", "./expenses.db"),
                        help="SQLite file holding the expense store (default: ./expenses.db, or EXPENSES_DB env var)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")

    sub = parser.add_subparsers(dest="command", required=True)

    cap = sub.add_parser("capture", help="OCR and record receipts")
    cap.add_argument("files", nargs="*",
                     help="Receipt images, PDFs or .txt files (default: everything in --incoming)")
    cap.add_argument("--incoming", default="./incoming",
                     help="Folder with new receipts (default: ./incoming)")
    cap.add_argument("--processed", default="./processed",
                     help="Folder captured files from --incoming are moved to (default: ./processed)")
    cap.add_argument("--llm-provider", choices=PROVIDERS,
                     help="LLM provider to use (default: openai, or LLM_PROVIDER env var)")
    cap.add_argument("--llm-model",
                     help="LLM model to use (uses provider default if not specified, or LLM_MODEL env var)")
    cap.add_argument("--llm-timeout", type=float, default=DEFAULT_LLM_TIMEOUT,
                     help=f"Seconds to wait for classification (default: {DEFAULT_LLM_TIMEOUT:g})")
    cap.add_argument("--no-llm", action="store_true",
                     help="Disable LLM classification, use only regex-based parsing")
    cap.add_argument("--no-cache", action="store_true",
                     help="Do not reuse or store cached classifications")
    cap.add_argument("--first-total", action="store_true",
                     help="Use the first labeled total instead of the last")

    dash = sub.add_parser("dashboard", help="Show spending analytics")
    dash.add_argument("--budget", type=float, default=DEFAULT_BUDGET,
                      help=f"Monthly budget (default: {DEFAULT_BUDGET:g})")

    exp = sub.add_parser("export", help="Write receipts.csv and summary.pdf")
    exp.add_argument("--output", default="./reports",
                     help="Folder for exported reports (default: ./reports)")
    exp.add_argument("--budget", type=float, default=DEFAULT_BUDGET,
                     help=f"Monthly budget (default: {DEFAULT_BUDGET:g})")
    exp.add_argument("--no-pdf", action="store_true", help="Only write the CSV")

    return parser


def _print_progress(percent: int):
    print(f"\r  [INFO] OCR {percent:3d}%", end="" if percent < 100 else "\n", flush=True)


def run_capture(args, store: ExpenseStore) -> int:
    # Resolve LLM provider from CLI arg or environment variable
    llm_provider = args.llm_provider or os.getenv("LLM_PROVIDER", "openai")
    if llm_provider not in PROVIDERS:
        print(f"[ERROR] Invalid LLM provider: {llm_provider}")
        print(f"[ERROR] Must be one of: {', '.join(PROVIDERS)}")
        return 1
    llm_model = args.llm_model or os.getenv("LLM_MODEL")

    if not args.no_llm:
        print(f"[INFO] LLM: {llm_provider} ({llm_model or 'default'})")

    if args.files:
        paths = [Path(f) for f in args.files]
        processed_dir = None
    else:
        incoming = Path(args.incoming)
        paths = discover_files(incoming)
        processed_dir = Path(args.processed)
        print(f"[INFO] Found {len(paths)} file(s) in {incoming}")

    if not paths:
        print("No receipt files found.")
        return 0

    pipeline = CapturePipeline(
        store=store,
        cache_db=None if args.no_cache else store.blob_store.db_path,
        use_llm=not args.no_llm,
        llm_provider=llm_provider,
        llm_model=llm_model,
        llm_timeout=args.llm_timeout,
        total_policy="first" if args.first_total else "last",
        verbose=args.verbose,
    )
    records = asyncio.run(capture_all(pipeline, paths, processed_dir=processed_dir,
                                      on_progress=_print_progress))
    print(f"[OK] Captured {len(records)} of {len(paths)} receipt(s); store holds {len(store)}")
    return 0 if records else 1


def run_dashboard(args, store: ExpenseStore) -> int:
    view = compute_analytics(store.records, budget=args.budget)
    for line in format_dashboard(view):
        print(line)
    return 0


def run_export(args, store: ExpenseStore) -> int:
    out_dir = Path(args.output)
    records = store.records

    out_csv = out_dir / "receipts.csv"
    write_csv(records, out_csv)
    print(f"[OK] Wrote {out_csv}")

    if not args.no_pdf:
        view = compute_analytics(records, budget=args.budget)
        summary_pdf = out_dir / "summary.pdf"
        build_summary_pdf(view, records, summary_pdf)
        print(f"[OK] Wrote {summary_pdf}")
    return 0


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    store = ExpenseStore.open(Path(args.db))
    if args.verbose:
        print(f"[INFO] Loaded {len(store)} expense(s) from {args.db}")

    if args.command == "capture":
        return run_capture(args, store)
    if args.command == "dashboard":
        return run_dashboard(args, store)
    return run_export(args, store)


if __name__ == "__main__":
    sys.exit(main())
