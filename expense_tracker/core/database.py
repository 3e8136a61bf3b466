"""
Database operations for expense storage and classification caching.
"""

import json
import sqlite3
from pathlib import Path
from typing import List, Optional

from .models import ClassifiedFields, ExpenseRecord

EXPENSES_SLOT = "expenses"


class BlobStore:
    """Named text slots in a single SQLite table. Each put replaces the whole value."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
            CREATE TABLE IF NOT EXISTS blob_store (
                slot TEXT PRIMARY KEY,
                value TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            conn.commit()

    def get(self, slot: str) -> Optional[str]:
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM blob_store WHERE slot = ?", (slot,))
            row = cur.fetchone()
            return row[0] if row else None

    def put(self, slot: str, value: str):
        with sqlite3.connect(self.db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
                INSERT OR REPLACE INTO blob_store (slot, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
            """, (slot, value))
            conn.commit()


class ExpenseStore:
    """
    Ordered, newest-first collection of expense records.

    The whole collection is read once by ``load()`` and written back as one
    JSON array on every ``append()``.
    """

    def __init__(self, blob_store: BlobStore, slot: str = EXPENSES_SLOT):
        self.blob_store = blob_store
        self.slot = slot
        self._records: List[ExpenseRecord] = []

    @classmethod
    def open(cls, db_path: Path, slot: str = EXPENSES_SLOT) -> "ExpenseStore":
        """Open the store at ``db_path`` and load its snapshot."""
        store = cls(BlobStore(db_path), slot=slot)
        store.load()
        return store

    def load(self) -> List[ExpenseRecord]:
        """Replace the in-memory snapshot with the persisted one."""
        self._records = self._read_snapshot()
        return self.records

    def _read_snapshot(self) -> List[ExpenseRecord]:
        try:
            raw = self.blob_store.get(self.slot)
        except sqlite3.Error as e:
            print(f"[WARN] Could not read expense store: {e}")
            return []
        if not raw:
            return []

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            print(f"[WARN] Stored expenses are corrupt, starting empty: {e}")
            return []
        if not isinstance(items, list):
            print("[WARN] Stored expenses are not a list, starting empty")
            return []

        records = []
        for idx, item in enumerate(items):
            try:
                records.append(ExpenseRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                print(f"[WARN] Skipping malformed stored expense #{idx}: {e}")
        return records

    @property
    def records(self) -> List[ExpenseRecord]:
        """Snapshot copy, newest first."""
        return list(self._records)

    def __len__(self):
        return len(self._records)

    def append(self, record: ExpenseRecord):
        """Insert a record at the head and flush the whole collection."""
        records = [record] + self._records
        self.blob_store.put(self.slot, json.dumps([r.to_dict() for r in records]))
        self._records = records


def init_classification_cache_db(db_path: Path):
    """Initialize SQLite table for LLM classification cache."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS classification_cache (
            text_hash TEXT PRIMARY KEY,
            merchant TEXT,
            total REAL,
            date TEXT,
            category TEXT,
            cached_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """)
        conn.commit()


def get_classification_cache(db_path: Path, text_hash: str) -> Optional[ClassifiedFields]:
    """Retrieve cached classification from SQLite."""
    try:
        with sqlite3.connect(db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
                SELECT merchant, total, date, category
                FROM classification_cache
                WHERE text_hash = ?
            """, (text_hash,))
            result = cur.fetchone()

            if result:
                return ClassifiedFields(
                    merchant=result[0],
                    total=result[1],
                    date=result[2],
                    category=result[3],
                )
            return None
    except sqlite3.Error as e:
        print(f"[WARN] Could not read from classification cache: {e}")
        return None


def save_classification_cache(db_path: Path, text_hash: str, classified: ClassifiedFields):
    """Save classification result to SQLite cache."""
    try:
        with sqlite3.connect(db_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
                INSERT OR REPLACE INTO classification_cache
                (text_hash, merchant, total, date, category)
                VALUES (?, ?, ?, ?, ?)
            """, (text_hash, classified.merchant, classified.total,
                  classified.date, classified.category))
            conn.commit()
    except sqlite3.Error as e:
        print(f"[WARN] Could not save to classification cache: {e}")
