# Overview: Weighted-average unit cost per product variant from purchase cost layers.

"""
Cost Aggregator

avg_cost(variant) = SUM(quantity * effective_unit_cost) / SUM(quantity)
over every PurchaseItem of the variant. Variants with no purchased quantity
cost 0. No rounding happens here; callers round when presenting a value.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..models import PurchaseItem
from ..money import ZERO, to_decimal


def average_costs(rows: Iterable) -> dict[str, Decimal]:
    """
    Group (product_variant_id, quantity, effective_unit_cost) rows by variant
    and return the weighted average cost of each. Pure.
    """
    totals: dict[str, list] = {}
    for row in rows:
        variant_id, quantity, cost = row
        entry = totals.setdefault(variant_id, [ZERO, 0])
        entry[0] += to_decimal(cost) * quantity
        entry[1] += quantity

    return {
        variant_id: (cost_qty / qty if qty > 0 else ZERO)
        for variant_id, (cost_qty, qty) in totals.items()
    }


def load_average_costs(variant_ids: Iterable[str]) -> dict[str, Decimal]:
    """Average cost for each requested variant; variants never purchased map to 0."""
    variant_ids = list(set(variant_ids))
    if not variant_ids:
        return {}

    rows = db.session.query(
        PurchaseItem.product_variant_id,
        PurchaseItem.quantity,
        PurchaseItem.effective_unit_cost,
    ).filter(PurchaseItem.product_variant_id.in_(variant_ids)).all()

    costs = average_costs(rows)
    return {variant_id: costs.get(variant_id, ZERO) for variant_id in variant_ids}
