# Overview: Sale transaction processing: validation, pricing checks, bill numbers, stock decrement.

"""
Sale Transaction Processor

A sale is recorded in one database transaction:

1. Resolve every SKU to its Product + ProductVariant (rows locked).
2. Per line: stock check, MRP / max-discount check, line_total rounded to cents.
3. Payments must add up to the sale total within one cent.
4. Allocate BILL-YYYYMMDD-NNNN.
5. Insert Sale, SaleItems, Payments and decrement stock.

Any failure rolls the whole unit back, so a rejected sale never touches stock.
The request body is parsed into a strict shape before the transaction starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Sale, SaleItem, Payment, Product
from ..money import ZERO, round_money
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    coerce_money,
    coerce_optional_str,
    coerce_str,
    reject_unknown_fields,
    require_list,
    require_object,
)
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_bill_number
from .pricing_service import validate_selling_price

PAYMENT_SUM_TOLERANCE = Decimal("0.01")

SALE_FIELDS = {"items", "payments"}
SALE_ITEM_FIELDS = {"sku", "quantity", "sellingPrice"}
PAYMENT_FIELDS = {"mode", "provider", "amount"}


class ProductNotFoundError(NotFoundError):
    """Raised when a SKU does not resolve to a Product."""


class InsufficientStockError(ConflictError):
    """Raised when a line asks for more units than are in stock."""


class PaymentMismatchError(ConflictError):
    """Raised when tendered payments do not cover the sale total."""


@dataclass(frozen=True)
class SaleLineInput:
    sku: str
    quantity: int
    selling_price: Decimal


@dataclass(frozen=True)
class PaymentInput:
    mode: str
    provider: str | None
    amount: Decimal


def parse_sale_payload(payload) -> tuple[list[SaleLineInput], list[PaymentInput]]:
    """Validate a weakly-typed sale body into strict line and payment inputs."""
    payload = require_object(payload)
    reject_unknown_fields(payload, SALE_FIELDS)

    raw_items = require_list(payload.get("items"), "items")
    raw_payments = require_list(payload.get("payments"), "payments")

    lines = []
    for i, raw in enumerate(raw_items):
        where = f"items[{i}]"
        raw = require_object(raw, where)
        reject_unknown_fields(raw, SALE_ITEM_FIELDS, where)
        if raw.get("sku") is None:
            raise ValidationError(f"{where}: sku is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"{where}: quantity is required")
        if raw.get("sellingPrice") is None:
            raise ValidationError(f"{where}: sellingPrice is required")
        lines.append(
            SaleLineInput(
                sku=coerce_str(raw["sku"], f"{where}.sku"),
                quantity=coerce_int(raw["quantity"], f"{where}.quantity", minimum=1),
                selling_price=coerce_money(raw["sellingPrice"], f"{where}.sellingPrice"),
            )
        )

    payments = []
    for i, raw in enumerate(raw_payments):
        where = f"payments[{i}]"
        raw = require_object(raw, where)
        reject_unknown_fields(raw, PAYMENT_FIELDS, where)
        if raw.get("mode") is None:
            raise ValidationError(f"{where}: mode is required")
        if raw.get("amount") is None:
            raise ValidationError(f"{where}: amount is required")
        payments.append(
            PaymentInput(
                mode=coerce_str(raw["mode"], f"{where}.mode"),
                provider=coerce_optional_str(raw.get("provider"), f"{where}.provider"),
                amount=coerce_money(raw["amount"], f"{where}.amount"),
            )
        )

    return lines, payments


def _load_products(skus: set[str]) -> dict[str, Product]:
    query = (
        db.session.query(Product)
        .options(joinedload(Product.variant, innerjoin=True))
        .filter(Product.sku.in_(skus))
        .order_by(Product.id)
    )
    products = lock_for_update(query).all()
    return {p.sku: p for p in products}


def _check_stock(line: SaleLineInput, product: Product, requested: dict[str, int]) -> None:
    """Running per-SKU total, so repeated SKUs are checked against stock together."""
    requested[line.sku] = requested.get(line.sku, 0) + line.quantity
    qty = requested[line.sku]
    on_hand = product.quantity_in_stock
    if qty > on_hand:
        raise InsufficientStockError(
            f"Insufficient stock for SKU {line.sku}: requested {qty}, available {on_hand}",
            details={"items": [{"sku": line.sku, "requested_quantity": qty, "on_hand": on_hand}]},
        )


def _decrement_stock(product: Product, quantity: int) -> None:
    """Guarded decrement: the row only changes if enough stock remains."""
    stmt = (
        update(Product)
        .where(Product.id == product.id, Product.quantity_in_stock >= quantity)
        .values(quantity_in_stock=Product.quantity_in_stock - quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise InsufficientStockError(
            f"Insufficient stock for SKU {product.sku}",
            details={"items": [{"sku": product.sku, "requested_quantity": quantity}]},
        )


def _record_sale(lines: list[SaleLineInput], payments: list[PaymentInput]) -> dict:
    products = _load_products({line.sku for line in lines})

    missing = sorted({line.sku for line in lines if line.sku not in products})
    if missing:
        raise ProductNotFoundError(
            f"Product not found for SKU: {missing[0]}",
            details={"skus": missing},
        )

    requested: dict[str, int] = {}
    priced = []
    total_amount = ZERO
    for line in lines:
        product = products[line.sku]
        variant = product.variant
        _check_stock(line, product, requested)
        validate_selling_price(
            line.selling_price,
            variant.mrp,
            variant.max_discount_percent,
            sku=line.sku,
        )
        line_total = round_money(line.selling_price * line.quantity)
        priced.append((product, line, line_total))
        total_amount += line_total
    total_amount = round_money(total_amount)

    payment_sum = round_money(sum((p.amount for p in payments), ZERO))
    if abs(payment_sum - total_amount) > PAYMENT_SUM_TOLERANCE:
        raise PaymentMismatchError(
            f"Payment total ({payment_sum}) does not match sale total ({total_amount})",
            details={"payment_total": str(payment_sum), "sale_total": str(total_amount)},
        )

    sold_at = utcnow()
    sale = Sale(
        bill_number=next_bill_number(sold_at),
        total_amount=total_amount,
        sold_at=sold_at,
    )
    db.session.add(sale)
    db.session.flush()

    for product, line, line_total in priced:
        db.session.add(
            SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                quantity=line.quantity,
                unit_price=line.selling_price,
                line_total=line_total,
            )
        )

    for product, line, _ in priced:
        _decrement_stock(product, line.quantity)

    for payment in payments:
        db.session.add(
            Payment(
                sale_id=sale.id,
                mode=payment.mode,
                provider=payment.provider,
                amount=payment.amount,
            )
        )
    db.session.flush()

    return {
        "saleId": sale.id,
        "billNumber": sale.bill_number,
        "totalAmount": total_amount,
        "soldAt": sold_at,
    }


def create_sale(payload) -> dict:
    """
    Record a sale from a request body
    {items: [{sku, quantity, sellingPrice}], payments: [{mode, provider?, amount}]}.

    Returns {saleId, billNumber, totalAmount, soldAt}.

    Raises:
        ValidationError: malformed body
        ProductNotFoundError: unknown SKU
        InsufficientStockError, PriceExceedsMrpError, DiscountExceedsLimitError,
        PaymentMismatchError: business rule violations
        InternalError: storage failure
    """
    lines, payments = parse_sale_payload(payload)
    return run_in_transaction(lambda: _record_sale(lines, payments))
