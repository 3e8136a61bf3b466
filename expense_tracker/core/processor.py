"""
Receipt capture orchestration: OCR, extraction, classification, reconciliation, storage.
"""

import asyncio
import datetime as dt
import json
import shutil
from pathlib import Path
from typing import List, Optional

from .utils import sha1_text, slugify, money_fmt, normalize_lines, IMAGE_EXTS, PDF_EXTS, TEXT_EXTS
from .models import ClassifiedFields, ExpenseRecord, RawCapture
from .ocr import recognize, ProgressCallback
from .parsers import extract_fields
from .llm import classify_receipt, classification_payload
from .reconcile import reconcile
from .database import (ExpenseStore, init_classification_cache_db,
                       get_classification_cache, save_classification_cache)

DEFAULT_LLM_TIMEOUT = 30.0


class CapturePipeline:
    """Turns receipt files or OCR text into expense records appended to the store."""

    def __init__(self, store: ExpenseStore,
                 cache_db: Optional[Path] = None,
                 use_llm: bool = True,
                 llm_provider: str = "openai",
                 llm_model: Optional[str] = None,
                 llm_timeout: float = DEFAULT_LLM_TIMEOUT,
                 total_policy: str = "last",
                 verbose: bool = False):
        """
        Initialize the capture pipeline.

        Args:
            store: Loaded expense store records are appended to
            cache_db: SQLite path for the classification cache (disabled if None)
            use_llm: Whether to call the LLM classifier
            llm_provider: LLM provider ("openai", "groq", "azure-openai", "anthropic")
            llm_model: LLM model name (uses provider default if not specified)
            llm_timeout: Seconds to wait for classification before falling back
            total_policy: Which labeled total wins, "last" or "first"
            verbose: Whether to show verbose debugging output
        """
        self.store = store
        self.cache_db = cache_db
        self.use_llm = use_llm
        self.llm_provider = llm_provider
        self.llm_model = llm_model
        self.llm_timeout = llm_timeout
        self.total_policy = total_policy
        self.verbose = verbose

        if self.cache_db is not None:
            init_classification_cache_db(self.cache_db)

    async def classify(self, raw_text: str) -> Optional[ClassifiedFields]:
        """
        Classify with cache lookup, timeout and cancellation fallback.

        Returns None whenever no classification is available; never raises
        for a failed, timed-out or cancelled classification.
        """
        if not self.use_llm:
            return None

        text_hash = sha1_text(raw_text)
        if self.cache_db is not None:
            cached = get_classification_cache(self.cache_db, text_hash)
            if cached is not None:
                if self.verbose:
                    print("  [DEBUG] Classification: used cached result (no API call)")
                return cached

        task = asyncio.ensure_future(
            classify_receipt(raw_text, provider=self.llm_provider, model=self.llm_model)
        )
        try:
            done, _ = await asyncio.wait({task}, timeout=self.llm_timeout)
        finally:
            # Timed out, or the capture itself was cancelled
            if not task.done():
                task.cancel()
        if not done:
            print(f"[WARN] Classification timed out after {self.llm_timeout:g}s, using parsed fields")
            return None
        if task.cancelled():
            print("[WARN] Classification was cancelled, using parsed fields")
            return None
        if task.exception() is not None:
            print(f"[WARN] Classification failed, using parsed fields: {task.exception()}")
            return None

        classified = task.result()
        if classified is not None and self.cache_db is not None:
            save_classification_cache(self.cache_db, text_hash, classified)
        return classified

    async def capture_text(self, raw_text: str,
                           captured_at: Optional[dt.datetime] = None) -> ExpenseRecord:
        """Run extraction, classification and reconciliation on OCR text and store the record."""
        capture = RawCapture(text=raw_text or "", captured_at=captured_at or dt.datetime.now())

        lines = normalize_lines(capture.text)
        extracted = extract_fields(capture.text, capture_date=capture.capture_date,
                                   total_policy=self.total_policy, lines=lines)
        classified = await self.classify(capture.text)
        record = reconcile(extracted, classified)

        if self.verbose:
            source = "LLM + parsers" if classified is not None else "parsers only"
            print(f"  [DEBUG] Classification: {json.dumps(classification_payload(classified))}")
            print(f"  [DEBUG] Merchant: '{record.merchant}'")
            print(f"  [DEBUG] Category: {record.category} ({source})")
            print(f"  [DEBUG] Date: {record.date}")
            print(f"  [DEBUG] Total: {money_fmt(record.total)}")
            if extracted.total == 0:
                print("  [WARN] Could not find a labeled total. Check OCR quality.")
                for i, line in enumerate(lines[:5], 1):
                    print(f"    {i}: {line[:80]}")

        self.store.append(record)
        return record

    async def capture_file(self, path: Path,
                           on_progress: Optional[ProgressCallback] = None) -> ExpenseRecord:
        """OCR a receipt file and capture its text."""
        print(f"[INFO] Capturing {path.name}")
        captured_at = dt.datetime.now()
        text = await recognize(path, on_progress=on_progress)
        return await self.capture_text(text, captured_at=captured_at)


def discover_files(incoming_dir: Path) -> List[Path]:
    """Receipt files waiting in the incoming directory."""
    if not incoming_dir.exists():
        return []
    return sorted(
        p for p in incoming_dir.iterdir()
        if p.suffix.lower() in IMAGE_EXTS | PDF_EXTS | TEXT_EXTS
    )


def move_to_processed(path: Path, processed_dir: Path, category: str, record_id: str) -> Path:
    """Move a captured file into processed/<category-slug>/ without overwriting."""
    cat_dir = processed_dir / slugify(category)
    cat_dir.mkdir(parents=True, exist_ok=True)
    dest = cat_dir / path.name
    if dest.exists():
        dest = cat_dir / f"{path.stem}_{record_id[:8]}{path.suffix}"
    shutil.move(path.as_posix(), dest.as_posix())
    return dest


async def capture_all(pipeline: CapturePipeline, paths: List[Path],
                      processed_dir: Optional[Path] = None,
                      on_progress: Optional[ProgressCallback] = None) -> List[ExpenseRecord]:
    """
    Capture files one after another.

    A file whose OCR fails is reported and skipped; the others are still captured.
    """
    records = []
    for path in paths:
        try:
            record = await pipeline.capture_file(path, on_progress=on_progress)
        except Exception as e:
            print(f"[ERROR] Failed {path.name}: {e}")
            continue
        records.append(record)
        print(f"[OK] {record.date} | {record.merchant} | {money_fmt(record.total)} | {record.category}")
        if processed_dir is not None:
            move_to_processed(path, processed_dir, record.category, record.id)
    return records
