# Overview: Supplier purchase recording with extra-charge allocation and stock restock.

"""
Purchase Transaction Processor

A purchase restocks SKUs that already exist for the supplier. Each item
becomes a cost layer whose effective_unit_cost carries its quantity share of
the purchase's extra charges:

    allocated = quantity / total_quantity * extra_charges
    effective_unit_cost = round((unit_cost * quantity + allocated) / quantity, 2)

Purchases never create Products. An item whose (variant, supplier) pair has
no Product fails the whole purchase with NoMatchingProductError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update

from ..extensions import db
from ..models import Product, ProductVariant, Purchase, PurchaseItem, Supplier
from ..money import ZERO, round_money
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_datetime,
    coerce_int,
    coerce_money,
    coerce_optional_str,
    coerce_str,
    reject_unknown_fields,
    require_list,
    require_object,
)
from .concurrency import run_in_transaction

PURCHASE_FIELDS = {"supplierId", "purchasedAt", "invoiceNo", "notes", "extraCharges", "items"}
PURCHASE_ITEM_FIELDS = {"productVariantId", "quantity", "unitCost"}


class SupplierNotFoundError(NotFoundError):
    pass


class VariantNotFoundError(NotFoundError):
    pass


class NoMatchingProductError(ConflictError):
    """No SKU exists for the (variant, supplier) pair being restocked."""


@dataclass(frozen=True)
class PurchaseLineInput:
    product_variant_id: str
    quantity: int
    unit_cost: Decimal


@dataclass(frozen=True)
class PurchaseInput:
    supplier_id: str
    purchased_at: datetime
    invoice_no: str | None
    notes: str | None
    extra_charges: Decimal | None
    items: list[PurchaseLineInput]


def parse_purchase_payload(payload) -> PurchaseInput:
    payload = require_object(payload)
    reject_unknown_fields(payload, PURCHASE_FIELDS)

    if payload.get("supplierId") is None:
        raise ValidationError("supplierId is required")
    supplier_id = coerce_str(payload["supplierId"], "supplierId")

    raw_items = require_list(payload.get("items"), "items")
    items = []
    for i, raw in enumerate(raw_items):
        where = f"items[{i}]"
        raw = require_object(raw, where)
        reject_unknown_fields(raw, PURCHASE_ITEM_FIELDS, where)
        for field in ("productVariantId", "quantity", "unitCost"):
            if raw.get(field) is None:
                raise ValidationError(f"{where}: {field} is required")
        items.append(
            PurchaseLineInput(
                product_variant_id=coerce_str(raw["productVariantId"], f"{where}.productVariantId"),
                quantity=coerce_int(raw["quantity"], f"{where}.quantity", minimum=1),
                unit_cost=coerce_money(raw["unitCost"], f"{where}.unitCost"),
            )
        )

    purchased_at = payload.get("purchasedAt")
    if purchased_at is None or (isinstance(purchased_at, str) and not purchased_at.strip()):
        purchased_at = utcnow()
    else:
        purchased_at = coerce_datetime(purchased_at, "purchasedAt")

    extra_charges = None
    if payload.get("extraCharges") is not None:
        extra_charges = coerce_money(payload["extraCharges"], "extraCharges")
        if extra_charges == 0:
            extra_charges = None

    return PurchaseInput(
        supplier_id=supplier_id,
        purchased_at=purchased_at,
        invoice_no=coerce_optional_str(payload.get("invoiceNo"), "invoiceNo"),
        notes=coerce_optional_str(payload.get("notes"), "notes"),
        extra_charges=extra_charges,
        items=items,
    )


def effective_unit_cost(unit_cost, quantity: int, total_quantity: int, extra_charges) -> Decimal:
    """Unit cost plus this item's quantity share of extra_charges, rounded to cents."""
    allocated = ZERO
    if extra_charges:
        allocated = Decimal(quantity) / Decimal(total_quantity) * extra_charges
    return round_money((unit_cost * quantity + allocated) / quantity)


def _increment_stock(variant_id: str, supplier_id: str, quantity: int) -> None:
    stmt = (
        update(Product)
        .where(Product.product_variant_id == variant_id, Product.supplier_id == supplier_id)
        .values(quantity_in_stock=Product.quantity_in_stock + quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise NoMatchingProductError(
            f"No product exists for variant {variant_id} and supplier {supplier_id}; "
            "create the SKU before purchasing it",
            details={"product_variant_id": variant_id, "supplier_id": supplier_id},
        )


def _record_purchase(data: PurchaseInput) -> dict:
    if db.session.get(Supplier, data.supplier_id) is None:
        raise SupplierNotFoundError(f"Supplier not found: {data.supplier_id}")

    variant_ids = {item.product_variant_id for item in data.items}
    found = {
        row[0]
        for row in db.session.query(ProductVariant.id).filter(ProductVariant.id.in_(variant_ids)).all()
    }
    missing = sorted(variant_ids - found)
    if missing:
        raise VariantNotFoundError(
            f"Product variant not found: {missing[0]}",
            details={"product_variant_ids": missing},
        )

    total_quantity = sum(item.quantity for item in data.items)
    if total_quantity <= 0:
        raise ValidationError("Total purchase quantity must be positive")

    purchase = Purchase(
        supplier_id=data.supplier_id,
        purchased_at=data.purchased_at,
        invoice_no=data.invoice_no,
        notes=data.notes,
        extra_charges=data.extra_charges,
    )
    db.session.add(purchase)
    db.session.flush()

    created_at = utcnow()
    for item in data.items:
        db.session.add(
            PurchaseItem(
                purchase_id=purchase.id,
                product_variant_id=item.product_variant_id,
                quantity=item.quantity,
                unit_cost=item.unit_cost,
                effective_unit_cost=effective_unit_cost(
                    item.unit_cost, item.quantity, total_quantity, data.extra_charges
                ),
                created_at=created_at,
            )
        )
        _increment_stock(item.product_variant_id, data.supplier_id, item.quantity)

    db.session.flush()
    return {"purchaseId": purchase.id}


def create_purchase(payload) -> dict:
    """
    Record a supplier purchase and restock the supplier's SKUs.

    Returns {purchaseId}.

    Raises:
        ValidationError: malformed body
        SupplierNotFoundError, VariantNotFoundError: unknown references
        NoMatchingProductError: no SKU for a (variant, supplier) pair
        InternalError: storage failure
    """
    data = parse_purchase_payload(payload)
    return run_in_transaction(lambda: _record_purchase(data))
