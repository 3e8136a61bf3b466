from __future__ import annotations

import json
from pathlib import Path

from expense_tracker.core.database import (
    EXPENSES_SLOT,
    BlobStore,
    ExpenseStore,
    get_classification_cache,
    init_classification_cache_db,
    save_classification_cache,
)
from expense_tracker.core.models import ClassifiedFields

from tests.helpers import make_record


def test_new_store_is_empty(store: ExpenseStore):
    assert store.records == []
    assert len(store) == 0


def test_append_inserts_newest_first_and_persists(db_path: Path, store: ExpenseStore):
    first = make_record(10.0, "2024-01-01", record_id="a")
    second = make_record(20.0, "2024-01-02", record_id="b")

    store.append(first)
    store.append(second)

    assert [r.id for r in store.records] == ["b", "a"]

    reopened = ExpenseStore.open(db_path)
    assert reopened.records == [second, first]


def test_persisted_layout_is_json_array_with_raw_text(db_path: Path, store: ExpenseStore):
    store.append(make_record(4.5, "2024-05-06", record_id="x"))

    payload = json.loads(BlobStore(db_path).get(EXPENSES_SLOT))

    assert isinstance(payload, list)
    assert payload[0] == {
        "id": "x",
        "merchant": "Corner Cafe",
        "total": 4.5,
        "date": "2024-05-06",
        "category": "Food",
        "rawText": "Corner Cafe\nTOTAL 4.50",
    }


def test_records_property_is_a_snapshot(store: ExpenseStore):
    store.append(make_record(1.0, "2024-01-01"))
    snapshot = store.records
    snapshot.clear()
    assert len(store) == 1


def test_corrupt_blob_loads_as_empty_and_is_rewritten(db_path: Path, capsys):
    BlobStore(db_path).put(EXPENSES_SLOT, "{not json")

    store = ExpenseStore.open(db_path)
    assert store.records == []
    assert "[WARN]" in capsys.readouterr().out

    store.append(make_record(3.0, "2024-01-01", record_id="fresh"))
    assert [r.id for r in ExpenseStore.open(db_path).records] == ["fresh"]


def test_non_list_blob_loads_as_empty(db_path: Path):
    BlobStore(db_path).put(EXPENSES_SLOT, json.dumps({"id": "a"}))
    assert ExpenseStore.open(db_path).records == []


def test_malformed_entries_are_skipped(db_path: Path):
    good = make_record(5.0, "2024-01-01", record_id="good").to_dict()
    bad_totals = [{"id": "neg", "total": -4.0}, {"id": "nan", "total": float("nan")}, {"id": "inf", "total": float("inf")}]
    BlobStore(db_path).put(
        EXPENSES_SLOT,
        json.dumps([good, "junk", {"merchant": "no id"}, {"id": "t", "total": "abc"}] + bad_totals),
    )

    records = ExpenseStore.open(db_path).records

    assert [r.id for r in records] == ["good"]


def test_unknown_stored_category_reads_as_general(db_path: Path):
    item = make_record(7.0, "2024-01-01", record_id="g").to_dict()
    item["category"] = "Groceries"
    BlobStore(db_path).put(EXPENSES_SLOT, json.dumps([item]))

    records = ExpenseStore.open(db_path).records

    assert [r.category for r in records] == ["General"]


def test_slots_are_independent(db_path: Path):
    a = ExpenseStore.open(db_path, slot="alice")
    b = ExpenseStore.open(db_path, slot="bob")
    a.append(make_record(1.0, "2024-01-01"))

    assert len(ExpenseStore.open(db_path, slot="alice")) == 1
    assert len(b.load()) == 0


def test_classification_cache_roundtrip(tmp_path: Path):
    cache = tmp_path / "cache.db"
    init_classification_cache_db(cache)
    fields = ClassifiedFields(merchant="Cafe X", total=9.5, date=None, category="Food")

    assert get_classification_cache(cache, "h1") is None
    save_classification_cache(cache, "h1", fields)

    assert get_classification_cache(cache, "h1") == fields
