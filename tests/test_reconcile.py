from __future__ import annotations

import pytest

from expense_tracker.core.models import (
    GENERAL_CATEGORY,
    UNKNOWN_MERCHANT,
    ClassifiedFields,
    ExtractedFields,
)
from expense_tracker.core.reconcile import reconcile

RAW = "CAFE\nTOTAL 9.50"


@pytest.fixture
def extracted() -> ExtractedFields:
    return ExtractedFields(merchant=UNKNOWN_MERCHANT, total=9.50, date="2024-01-01", raw_text=RAW)


def test_classified_fields_win_and_nulls_fall_back(extracted):
    classified = ClassifiedFields(merchant="Cafe X", total=None, date=None, category="Food")

    record = reconcile(extracted, classified)

    assert (record.merchant, record.total, record.date, record.category) == (
        "Cafe X",
        9.50,
        "2024-01-01",
        "Food",
    )
    assert record.raw_text == RAW


def test_no_classification_uses_extracted_and_general(extracted):
    record = reconcile(extracted, None)

    assert record.merchant == UNKNOWN_MERCHANT
    assert record.total == 9.50
    assert record.date == "2024-01-01"
    assert record.category == GENERAL_CATEGORY


def test_full_classification_overrides_everything(extracted):
    classified = ClassifiedFields(merchant="Metro", total=2.75, date="2024-03-05", category="Transport")

    record = reconcile(extracted, classified)

    assert (record.merchant, record.total, record.date, record.category) == (
        "Metro",
        2.75,
        "2024-03-05",
        "Transport",
    )


def test_zero_classified_total_is_a_value(extracted):
    record = reconcile(extracted, ClassifiedFields(total=0.0))
    assert record.total == 0.0


def test_out_of_set_category_becomes_general(extracted):
    record = reconcile(extracted, ClassifiedFields(category="Groceries"))
    assert record.category == GENERAL_CATEGORY


def test_blank_classified_merchant_falls_back(extracted):
    record = reconcile(extracted, ClassifiedFields(merchant="   "))
    assert record.merchant == UNKNOWN_MERCHANT


def test_total_is_rounded_to_cents():
    extracted = ExtractedFields(merchant="Shop", total=0.0, date="2024-01-01", raw_text="")
    record = reconcile(extracted, ClassifiedFields(total=10.005 + 0.001))
    assert record.total == 10.01


def test_each_record_gets_a_fresh_id(extracted):
    ids = {reconcile(extracted).id for _ in range(50)}
    assert len(ids) == 50
    assert all(ids)
