"""
Unit tests for the pure pipeline stages: reconciliation and aggregation.
"""
import random
from datetime import date
from types import SimpleNamespace

import pytest

from app.pipeline.aggregate import (
    average,
    chart_projection,
    currency_symbol,
    summarize,
    tax_estimate,
    tax_for,
    total,
)
from app.pipeline.reconcile import apply_edit, finalize, seed_form, to_number
from app.schemas import ExtractionResult, FormState

IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def _rec(merchant="Shop", amount=10.0, tax=None, currency="USD"):
    return SimpleNamespace(merchant=merchant, amount=amount, tax=tax, currency=currency)


# =====================================================================
# Reconciliation
# =====================================================================
class TestSeedForm:
    def test_defaults_without_extraction(self):
        form = seed_form(None)
        assert form.merchant == ""
        assert form.date == date.today().isoformat()
        assert form.amount == 0
        assert form.tax == 0
        assert form.currency == "INR"
        assert form.category == "Other"

    def test_copies_extraction_verbatim(self):
        result = ExtractionResult(
            merchant="Cafe Luna", date="2024-03-01", amount=42.5,
            tax=2.78, currency="USD", category="Food & Drinks",
        )
        form = seed_form(result)
        assert form.model_dump() == result.model_dump()

    def test_missing_tax_stays_missing(self):
        result = ExtractionResult(
            merchant="Cafe Luna", date="2024-03-01", amount=42.5,
            currency="USD", category="Food & Drinks",
        )
        assert seed_form(result).tax is None

    def test_unparsable_numbers_become_zero(self):
        result = ExtractionResult.model_construct(
            merchant="X", date="2024-03-01", amount="n/a", tax="??",
            currency="USD", category="Other",
        )
        form = seed_form(result)
        assert form.amount == 0
        assert form.tax == 0


class TestEdits:
    def test_text_edit(self):
        form = seed_form(None)
        apply_edit(form, "merchant", "Corner Store")
        assert form.merchant == "Corner Store"

    @pytest.mark.parametrize("raw, expected", [("12.5", 12.5), ("", 0), ("abc", 0), (None, 0), ("nan", 0), (7, 7)])
    def test_numeric_edit_is_coerced(self, raw, expected):
        form = seed_form(None)
        apply_edit(form, "amount", raw)
        assert form.amount == expected

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_clearing_tax_makes_it_absent(self, raw):
        form = seed_form(None)
        apply_edit(form, "tax", "3.5")
        assert form.tax == 3.5
        apply_edit(form, "tax", raw)
        assert form.tax is None

    def test_unparsable_tax_is_zero(self):
        form = seed_form(None)
        apply_edit(form, "tax", "abc")
        assert form.tax == 0

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            apply_edit(FormState(), "id", 3)

    def test_to_number_rejects_bool(self):
        assert to_number(True) == 0


class TestFinalize:
    def test_round_trip(self):
        result = ExtractionResult(
            merchant="Cafe Luna", date="2024-03-01", amount=42.5,
            currency="USD", category="Food & Drinks",
        )
        record = finalize(seed_form(result), IMAGE)
        assert record.image_url == IMAGE
        dumped = record.model_dump()
        for key, value in result.model_dump().items():
            assert dumped[key] == value

    def test_edits_carry_over(self):
        form = seed_form(None)
        apply_edit(form, "merchant", "Manual")
        apply_edit(form, "amount", "19.99")
        record = finalize(form, IMAGE)
        assert record.merchant == "Manual"
        assert record.amount == 19.99
        assert record.tax == 0

    def test_cleared_tax_reaches_store_as_absent(self):
        form = seed_form(None)
        apply_edit(form, "tax", "")
        assert finalize(form, IMAGE).tax is None


# =====================================================================
# Aggregation
# =====================================================================
class TestAggregate:
    def test_total_is_order_independent(self):
        records = [_rec(amount=a) for a in (1.25, 10, 3.5, 99.99, 0)]
        shuffled = list(records)
        random.Random(7).shuffle(shuffled)
        assert total(records) == pytest.approx(total(shuffled))
        assert total(records) == pytest.approx(114.74)

    def test_tax_for_explicit(self):
        assert tax_for(_rec(amount=100, tax=5)) == 5

    def test_tax_for_zero_is_explicit(self):
        assert tax_for(_rec(amount=100, tax=0)) == 0

    def test_tax_for_fallback(self):
        assert tax_for(_rec(amount=107)) == pytest.approx(7.0)

    def test_tax_estimate_mixes_rules(self):
        records = [_rec(amount=42.5), _rec(amount=20, tax=1.5)]
        assert tax_estimate(records) == pytest.approx(42.5 - 42.5 / 1.07 + 1.5)

    def test_average(self):
        assert average([]) == 0
        assert average([_rec(amount=10), _rec(amount=20)]) == 15

    def test_chart_window(self):
        records = [_rec(merchant=f"m{i}", amount=i) for i in range(7)]
        chart = chart_projection(records)
        assert len(chart) == 5
        assert [p.label for p in chart] == ["m4", "m3", "m2", "m1", "m0"]
        assert chart[0].value == records[4].amount

    def test_chart_short_list(self):
        chart = chart_projection([_rec(merchant="a"), _rec(merchant="b")])
        assert [p.label for p in chart] == ["b", "a"]

    def test_chart_does_not_mutate_input(self):
        records = [_rec(merchant=f"m{i}") for i in range(3)]
        chart_projection(records)
        assert [r.merchant for r in records] == ["m0", "m1", "m2"]

    @pytest.mark.parametrize(
        "code, symbol",
        [("USD", "$"), ("EUR", "€"), ("GBP", "£"), ("JPY", "¥"), ("CAD", "C$"), ("AUD", "A$"), ("INR", "₹"), ("AED", "$")],
    )
    def test_currency_symbol(self, code, symbol):
        assert currency_symbol(code) == symbol

    def test_summary_uses_first_currency(self):
        summary = summarize([_rec(currency="GBP"), _rec(currency="USD")])
        assert summary.currency == "GBP"
        assert summary.symbol == "£"
        assert summary.count == 2

    def test_summary_empty_uses_fallback(self):
        summary = summarize([])
        assert summary.currency == "INR"
        assert summary.symbol == "₹"
        assert summary.average == 0
