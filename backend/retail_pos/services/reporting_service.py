# Overview: Read-only report aggregators over sales, purchases and stock.

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Product, ProductVariant, Sale, SaleItem
from ..money import ZERO, round_money, to_decimal
from ..time_utils import day_end, day_start, parse_date_param, to_utc_z, utcnow
from ..validation import ValidationError
from .aging_service import (
    AGING_BUCKETS,
    age_in_days,
    aging_bucket,
    apply_fifo,
    load_cost_layers,
    load_units_sold,
    suggest_discount,
)
from .costing_service import load_average_costs

DEFAULT_PAYMENT_MODES = ("CASH", "CARD", "UPI_N", "UPI_S")
DEFAULT_PAYMENT_MODE = "CASH"
MISSING_SKU = "-"


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


def _parse_day(value: str | None, param: str) -> date | None:
    try:
        return parse_date_param(value)
    except ValueError:
        raise ReportError(f"Invalid {param}: must be YYYY-MM-DD")


def _parse_range(from_date: str | None, to_date: str | None) -> tuple[datetime | None, datetime | None]:
    start = _parse_day(from_date, "from")
    end = _parse_day(to_date, "to")
    return (day_start(start) if start else None, day_end(end) if end else None)


def _load_sales(start_dt: datetime | None, end_dt: datetime | None, *, newest_first: bool = False) -> list[Sale]:
    query = db.session.query(Sale).options(
        selectinload(Sale.items).joinedload(SaleItem.product),
        selectinload(Sale.payments),
    )
    if start_dt:
        query = query.filter(Sale.sold_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.sold_at <= end_dt)
    order = Sale.sold_at.desc() if newest_first else Sale.sold_at.asc()
    return query.order_by(order, Sale.bill_number.desc() if newest_first else Sale.bill_number.asc()).all()


def _payment_mode(mode: str | None) -> str:
    return mode or DEFAULT_PAYMENT_MODE


def _aggregate_sales(sales: list[Sale]) -> dict:
    payments = {mode: ZERO for mode in DEFAULT_PAYMENT_MODES}
    total_items = 0
    total_revenue = ZERO
    for sale in sales:
        total_items += sum(item.quantity for item in sale.items)
        total_revenue += to_decimal(sale.total_amount)
        for payment in sale.payments:
            mode = _payment_mode(payment.mode)
            payments[mode] = payments.get(mode, ZERO) + to_decimal(payment.amount)

    return {
        "totalBills": len(sales),
        "totalItems": total_items,
        "totalRevenue": round_money(total_revenue),
        "payments": {mode: round_money(amount) for mode, amount in payments.items()},
    }


def daily_sales(day: str | None) -> dict:
    """Bills, items, revenue and payments by mode for one UTC day (date required)."""
    parsed = _parse_day(day, "date")
    if parsed is None:
        raise ReportError("Query param date required (YYYY-MM-DD)")
    sales = _load_sales(day_start(parsed), day_end(parsed))
    return {"date": parsed.isoformat(), **_aggregate_sales(sales)}


def sales_summary(from_date: str | None = None, to_date: str | None = None) -> dict:
    start_dt, end_dt = _parse_range(from_date, to_date)
    sales = _load_sales(start_dt, end_dt)
    return {
        "from": from_date or None,
        "to": to_date or None,
        **_aggregate_sales(sales),
    }


def sales_list(from_date: str | None = None, to_date: str | None = None) -> list[dict]:
    """Sales newest first, with line items and payments by mode."""
    start_dt, end_dt = _parse_range(from_date, to_date)
    result = []
    for sale in _load_sales(start_dt, end_dt, newest_first=True):
        payments: dict[str, object] = {}
        for payment in sale.payments:
            mode = _payment_mode(payment.mode)
            payments[mode] = payments.get(mode, ZERO) + to_decimal(payment.amount)
        result.append(
            {
                "saleId": sale.id,
                "billNumber": sale.bill_number,
                "soldAt": to_utc_z(sale.sold_at),
                "totalAmount": to_decimal(sale.total_amount),
                "totalItems": sum(item.quantity for item in sale.items),
                "payments": {mode: round_money(amount) for mode, amount in payments.items()},
                "items": [
                    {
                        "sku": item.product.sku if item.product else None,
                        "quantity": item.quantity,
                        "unitPrice": to_decimal(item.unit_price),
                        "lineTotal": to_decimal(item.line_total),
                    }
                    for item in sale.items
                ],
            }
        )
    return result


def sales_profit(from_date: str | None = None, to_date: str | None = None) -> dict:
    """
    Per-sale profit against average purchase cost:
    profit = round(sum((unit_price - avg_cost(variant)) * quantity), 2).
    """
    start_dt, end_dt = _parse_range(from_date, to_date)
    sales = _load_sales(start_dt, end_dt, newest_first=True)

    variant_ids = {
        item.product.product_variant_id
        for sale in sales
        for item in sale.items
        if item.product is not None
    }
    avg_costs = load_average_costs(variant_ids)

    rows = []
    total_profit = ZERO
    for sale in sales:
        profit = ZERO
        for item in sale.items:
            cost = avg_costs.get(item.product.product_variant_id, ZERO) if item.product else ZERO
            profit += (to_decimal(item.unit_price) - cost) * item.quantity
        profit = round_money(profit)
        total_profit += profit
        rows.append(
            {
                "saleId": sale.id,
                "billNumber": sale.bill_number,
                "soldAt": to_utc_z(sale.sold_at),
                "totalAmount": to_decimal(sale.total_amount),
                "profit": profit,
            }
        )

    return {
        "from": from_date or None,
        "to": to_date or None,
        "sales": rows,
        "totalProfit": round_money(total_profit),
    }


def inventory_snapshot() -> list[dict]:
    products = (
        db.session.query(Product)
        .options(joinedload(Product.variant).joinedload(ProductVariant.category))
        .order_by(Product.sku.asc())
        .all()
    )
    return [
        {
            "sku": p.sku,
            "categoryName": p.variant.category.name if p.variant and p.variant.category else None,
            "attributes": (p.variant.attributes or {}) if p.variant else {},
            "quantityInStock": p.quantity_in_stock,
            "mrp": to_decimal(p.variant.mrp) if p.variant else None,
            "sellingPrice": to_decimal(p.variant.default_selling_price) if p.variant else None,
        }
        for p in products
    ]


def _load_variants(category_id: str | None = None) -> list[ProductVariant]:
    query = db.session.query(ProductVariant).options(
        selectinload(ProductVariant.products),
        joinedload(ProductVariant.category),
    )
    if category_id:
        query = query.filter(ProductVariant.category_id == category_id)
    return query.order_by(ProductVariant.created_at.asc(), ProductVariant.id.asc()).all()


def _first_sku(variant: ProductVariant) -> str:
    skus = sorted(p.sku for p in variant.products)
    return skus[0] if skus else MISSING_SKU


def inventory_valuation() -> list[dict]:
    """Stock (summed over the variant's SKUs) times average cost; variants without stock are skipped."""
    variants = _load_variants()
    avg_costs = load_average_costs(v.id for v in variants)

    rows = []
    for variant in variants:
        stock_qty = sum(p.quantity_in_stock for p in variant.products)
        if stock_qty == 0:
            continue
        avg_cost = avg_costs.get(variant.id, ZERO)
        rows.append(
            {
                "productVariantId": variant.id,
                "sku": _first_sku(variant),
                "categoryName": variant.category.name if variant.category else None,
                "attributes": variant.attributes or {},
                "stockQty": stock_qty,
                "avgCost": round_money(avg_cost),
                "inventoryValue": round_money(avg_cost * stock_qty),
            }
        )
    return rows


def inventory_aging(as_of_date: str | None = None, category_id: str | None = None) -> dict:
    """
    FIFO aging of remaining purchase layers as of a UTC day (default today),
    with per-bucket totals and a markdown suggestion per layer.
    """
    as_of = _parse_day(as_of_date, "asOfDate") or utcnow().date()
    category_id = (category_id or "").strip() or None

    buckets = {bucket: {"quantity": 0, "value": ZERO} for bucket in AGING_BUCKETS}
    items = []

    variants = _load_variants(category_id)
    variant_ids = [v.id for v in variants]
    layers_by_variant = load_cost_layers(variant_ids)
    sold_by_variant = load_units_sold(variant_ids)

    for variant in variants:
        sku = _first_sku(variant)
        remaining = apply_fifo(layers_by_variant.get(variant.id, []), sold_by_variant.get(variant.id, 0))
        for layer in remaining:
            age_days = age_in_days(as_of, layer.purchased_at)
            bucket = aging_bucket(age_days)
            value = round_money(layer.effective_unit_cost * layer.quantity)
            suggestion = suggest_discount(
                bucket,
                variant.default_selling_price,
                variant.max_discount_percent,
                layer.effective_unit_cost,
            )
            items.append(
                {
                    "productVariantId": variant.id,
                    "sku": sku,
                    "ageDays": age_days,
                    "bucket": bucket,
                    "quantity": layer.quantity,
                    "value": value,
                    "suggestedDiscountPercent": suggestion.suggested_discount_percent,
                    "suggestedPrice": suggestion.suggested_price,
                    "discountCappedByCost": suggestion.discount_capped_by_cost,
                }
            )
            buckets[bucket]["quantity"] += layer.quantity
            buckets[bucket]["value"] = round_money(buckets[bucket]["value"] + value)

    return {"asOfDate": as_of.isoformat(), "buckets": buckets, "items": items}
