"""
test_normalization.py — Tests for app/utils/normalization.py

Covers localized text resolution, references, listing shapes, order rows,
category maps and PrestaShop dates.

Called by: pytest
Depends on: app/utils/normalization.py
"""

from datetime import datetime, timezone

import pytest

from app.utils import safe_decimal
from app.utils.normalization import (
    Localized,
    Scalar,
    as_record_list,
    as_row_list,
    build_category_map,
    decode_text_value,
    normalize_localized_text,
    normalize_reference,
    parse_prestashop_datetime,
    resolve_category,
)

# ── Localized text ───────────────────────────────────────────────────


def test_first_language_wins():
    assert normalize_localized_text({"1": "Café", "2": "Coffee"}) == "Café"


def test_plain_string_unchanged():
    assert normalize_localized_text("Plain") == "Plain"


def test_empty_mapping_gives_default():
    assert normalize_localized_text({}) == "Unknown"
    assert normalize_localized_text({}, default="Sans nom") == "Sans nom"


def test_wrapped_value_unwrapped():
    assert normalize_localized_text({"1": {"value": "Thé"}}) == "Thé"


def test_language_list_shape():
    raw = [{"id": "1", "value": "Chemise"}, {"id": "2", "value": "Shirt"}]
    assert normalize_localized_text(raw) == "Chemise"


@pytest.mark.parametrize("raw", [None, [], {"1": None}, {"1": ""}, {"1": {"id": "1"}}, {"1": ["x"]}, True])
def test_unresolvable_shapes_degrade(raw):
    assert normalize_localized_text(raw, default="X") == "X"


def test_numbers_become_strings():
    assert normalize_localized_text(1234) == "1234"
    assert normalize_localized_text({"1": 0}) == "0"


def test_decode_is_tagged():
    assert decode_text_value("a") == Scalar("a")
    assert decode_text_value({"1": "a"}) == Localized({"1": "a"})
    assert decode_text_value(object()) is None


# ── References ───────────────────────────────────────────────────────


def test_reference_shapes():
    assert normalize_reference("REF-1") == "REF-1"
    assert normalize_reference({"1": "REF-2"}) == "REF-2"
    assert normalize_reference("") is None
    assert normalize_reference("   ") is None
    assert normalize_reference(None) is None
    assert normalize_reference({}) is None


# ── Listings & rows ──────────────────────────────────────────────────


def test_record_list_shapes():
    assert as_record_list({"products": [{"id": 1}, {"id": 2}]}, "products") == [{"id": 1}, {"id": 2}]
    assert as_record_list({"products": {"id": 1}}, "products") == [{"id": 1}]
    assert as_record_list([], "products") == []
    assert as_record_list({"other": []}, "products") == []
    assert as_record_list({"products": [{"id": 1}, "junk"]}, "products") == [{"id": 1}]


def test_single_order_row_is_wrapped():
    row = {"id": "7", "product_id": "3", "product_quantity": "1"}
    assert as_row_list(row) == [row]


def test_order_rows_list_and_keyed():
    rows = [{"id": "1"}, {"id": "2"}]
    assert as_row_list(rows) == rows
    assert as_row_list({"0": {"id": "1"}, "1": {"id": "2"}}) == rows
    assert as_row_list(None) == []


# ── Categories ───────────────────────────────────────────────────────


def test_category_map_built_once_and_resolved():
    cats = build_category_map(
        [
            {"id": "3", "name": {"1": "Robes", "2": "Dresses"}},
            {"id": 4, "name": "Accessoires"},
            {"id": 5, "name": {}},
            {"name": "no id"},
        ]
    )
    assert cats == {3: "Robes", 4: "Accessoires", 5: "Uncategorized"}
    assert resolve_category(cats, "3") == "Robes"
    assert resolve_category(cats, 99) is None
    assert resolve_category(cats, None) is None


# ── Dates & money ────────────────────────────────────────────────────


def test_parse_prestashop_datetime():
    parsed = parse_prestashop_datetime("2024-03-05 14:30:00")
    assert parsed == datetime(2024, 3, 5, 14, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw", ["", "0000-00-00 00:00:00", "05/03/2024", None, 12])
def test_bad_dates_are_none(raw):
    assert parse_prestashop_datetime(raw) is None


def test_safe_decimal():
    assert str(safe_decimal("12.50")) == "12.50"
    assert safe_decimal("abc") is None
    assert safe_decimal("NaN", default=0) == 0
    assert safe_decimal(None) is None
