"""Shared fixtures.

LLM clients are cached at module level in ``expense_tracker.core.llm``; the
autouse fixture below clears that cache so a stub installed by one test never
leaks into the next, and no test can reach a real provider by accident.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from expense_tracker.core import llm
from expense_tracker.core.database import ExpenseStore


@pytest.fixture(autouse=True)
def _isolate_llm_clients(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm, "_clients", {})
    for var in ("LLM_PROVIDER", "LLM_MODEL", "EXPENSES_DB"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "expenses.db"


@pytest.fixture
def store(db_path: Path) -> ExpenseStore:
    return ExpenseStore.open(db_path)

