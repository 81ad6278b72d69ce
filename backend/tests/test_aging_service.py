from datetime import date, datetime
from decimal import Decimal

import pytest

from retail_pos.services.aging_service import (
    CostLayer,
    age_in_days,
    aging_bucket,
    apply_fifo,
    bucket_discount_percent,
    suggest_discount,
)

T1 = datetime(2026, 1, 1, 10, 0)
T2 = datetime(2026, 2, 1, 10, 0)


def test_fifo_consumes_oldest_layer_first():
    layers = [CostLayer(T1, 10, Decimal("5")), CostLayer(T2, 5, Decimal("6"))]
    assert apply_fifo(layers, 12) == [CostLayer(T2, 3, Decimal("6"))]


def test_fifo_nothing_sold_keeps_layers():
    layers = [CostLayer(T1, 10, Decimal("5"))]
    assert apply_fifo(layers, 0) == layers


def test_fifo_oversold_leaves_nothing():
    layers = [CostLayer(T1, 10, Decimal("5")), CostLayer(T2, 5, Decimal("6"))]
    assert apply_fifo(layers, 20) == []


def test_age_ignores_time_of_day():
    assert age_in_days(date(2026, 1, 31), datetime(2026, 1, 1, 23, 59)) == 30
    assert age_in_days(datetime(2026, 1, 1, 0, 1), datetime(2026, 1, 1, 23, 0)) == 0


@pytest.mark.parametrize(
    "age,bucket",
    [(-3, "0-30"), (0, "0-30"), (30, "0-30"), (31, "31-60"), (60, "31-60"), (61, "61-90"), (90, "61-90"), (91, "90+")],
)
def test_bucket_boundaries(age, bucket):
    assert aging_bucket(age) == bucket


def test_bucket_discounts():
    assert [bucket_discount_percent(b) for b in ("0-30", "31-60", "61-90", "90+")] == [
        Decimal("0"), Decimal("5"), Decimal("10"), Decimal("20"),
    ]
    assert bucket_discount_percent("unknown") == Decimal("0")


def test_suggested_price_is_capped_by_cost():
    suggestion = suggest_discount("90+", Decimal("90"), Decimal("50"), Decimal("95"))
    assert suggestion.suggested_discount_percent == Decimal("20")
    assert suggestion.suggested_price == Decimal("95.00")
    assert suggestion.discount_capped_by_cost is True


def test_suggested_discount_limited_by_variant_max():
    suggestion = suggest_discount("90+", Decimal("90"), Decimal("10"), Decimal("40"))
    assert suggestion.suggested_discount_percent == Decimal("10")
    assert suggestion.suggested_price == Decimal("81.00")
    assert suggestion.discount_capped_by_cost is False


def test_missing_selling_price_falls_back_to_cost():
    suggestion = suggest_discount("31-60", None, Decimal("10"), Decimal("12.50"))
    assert suggestion.suggested_price == Decimal("12.50")
    assert suggestion.discount_capped_by_cost is False
