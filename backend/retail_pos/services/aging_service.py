# Overview: FIFO layer consumption, age bucketing and markdown suggestions for inventory aging.

"""
FIFO Aging Engine

Remaining stock is approximated by consuming each variant's purchase layers
oldest-first against the variant's cumulative units sold. Whatever is left
keeps its original purchase date and is aged as of the report date.

The cumulative figure is lifetime units sold, not units sold before the
as-of date, so backdated reports age today's remaining layers. There is no
per-sale depletion timeline.

Buckets (inclusive upper bounds) and base markdown:
    0-30  ->  0%
    31-60 ->  5%
    61-90 -> 10%
    90+   -> 20%
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Purchase, PurchaseItem, SaleItem
from ..money import ZERO, round_money, to_decimal

AGING_BUCKETS = ("0-30", "31-60", "61-90", "90+")

BUCKET_DISCOUNT_PERCENT = {
    "0-30": Decimal("0"),
    "31-60": Decimal("5"),
    "61-90": Decimal("10"),
    "90+": Decimal("20"),
}


@dataclass(frozen=True)
class CostLayer:
    purchased_at: datetime
    quantity: int
    effective_unit_cost: Decimal


@dataclass(frozen=True)
class DiscountSuggestion:
    suggested_discount_percent: Decimal
    suggested_price: Decimal
    discount_capped_by_cost: bool


def apply_fifo(layers: Iterable[CostLayer], total_sold: int) -> list[CostLayer]:
    """
    Consume total_sold units from layers in the order given (oldest first).

    Fully consumed layers are dropped, the partially consumed one keeps its
    remainder, later layers pass through unchanged.
    """
    to_consume = max(int(total_sold or 0), 0)
    remaining = []
    for layer in layers:
        consumed = min(layer.quantity, to_consume)
        to_consume -= consumed
        left = layer.quantity - consumed
        if left > 0:
            remaining.append(CostLayer(layer.purchased_at, left, layer.effective_unit_cost))
    return remaining


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def age_in_days(as_of, purchased_at) -> int:
    """Whole days between the two calendar dates (times of day are ignored)."""
    return (_as_date(as_of) - _as_date(purchased_at)).days


def aging_bucket(age_days: int) -> str:
    if age_days <= 30:
        return "0-30"
    if age_days <= 60:
        return "31-60"
    if age_days <= 90:
        return "61-90"
    return "90+"


def bucket_discount_percent(bucket: str) -> Decimal:
    return BUCKET_DISCOUNT_PERCENT.get(bucket, ZERO)


def _finite_or_none(value) -> Decimal | None:
    if value is None:
        return None
    try:
        dec = to_decimal(value)
    except (ArithmeticError, ValueError, TypeError):
        return None
    return dec if dec.is_finite() else None


def suggest_discount(bucket: str, default_selling_price, max_discount_percent, cost) -> DiscountSuggestion:
    """
    Markdown suggestion for one aged layer.

    The bucket's base discount is capped by the variant's max discount. The
    suggested price never goes below the layer's effective unit cost; when it
    would, it is raised to cost and discount_capped_by_cost is set.
    """
    limit = _finite_or_none(max_discount_percent)
    pct = min(bucket_discount_percent(bucket), limit if limit is not None else ZERO)

    cost = to_decimal(cost)
    selling_price = _finite_or_none(default_selling_price)
    if selling_price is not None and selling_price > 0:
        price = round_money(selling_price * (1 - pct / 100))
    else:
        price = cost

    capped = False
    if price < cost:
        price = round_money(cost)
        capped = True

    return DiscountSuggestion(
        suggested_discount_percent=pct,
        suggested_price=price,
        discount_capped_by_cost=capped,
    )


def load_cost_layers(variant_ids: Iterable[str]) -> dict[str, list[CostLayer]]:
    """Purchase layers per variant, oldest purchase first."""
    variant_ids = list(variant_ids)
    if not variant_ids:
        return {}

    rows = db.session.query(
        PurchaseItem.product_variant_id,
        Purchase.purchased_at,
        PurchaseItem.quantity,
        PurchaseItem.effective_unit_cost,
    ).join(Purchase, PurchaseItem.purchase_id == Purchase.id).filter(
        PurchaseItem.product_variant_id.in_(variant_ids),
    ).order_by(Purchase.purchased_at.asc(), PurchaseItem.created_at.asc()).all()

    layers: dict[str, list[CostLayer]] = {}
    for variant_id, purchased_at, quantity, cost in rows:
        layers.setdefault(variant_id, []).append(
            CostLayer(purchased_at=purchased_at, quantity=quantity, effective_unit_cost=to_decimal(cost))
        )
    return layers


def load_units_sold(variant_ids: Iterable[str]) -> dict[str, int]:
    """Lifetime units sold per variant across all of its SKUs."""
    variant_ids = list(variant_ids)
    if not variant_ids:
        return {}

    rows = db.session.query(
        Product.product_variant_id,
        func.coalesce(func.sum(SaleItem.quantity), 0),
    ).join(Product, SaleItem.product_id == Product.id).filter(
        Product.product_variant_id.in_(variant_ids),
    ).group_by(Product.product_variant_id).all()

    return {variant_id: int(sold or 0) for variant_id, sold in rows}
