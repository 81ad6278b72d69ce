# Overview: Product/SKU catalog operations: lookup by SKU, SKU generation, variant + SKU creation.

from __future__ import annotations

import re
from decimal import Decimal

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import AttributeDefinition, Category, Product, ProductVariant, Subcategory, Supplier
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    coerce_money,
    coerce_optional_str,
    coerce_str,
    reject_unknown_fields,
    require_object,
)
from .concurrency import run_in_transaction
from .purchase_service import SupplierNotFoundError, VariantNotFoundError
from .sales_service import ProductNotFoundError

SKU_COUNTER_PAD = 4

PRODUCT_FIELDS = {
    "productVariantId",
    "categoryId",
    "subcategoryId",
    "attributes",
    "mrp",
    "defaultSellingPrice",
    "maxDiscountPercent",
    "supplierId",
    "quantityInStock",
}
# Only these may accompany productVariantId; pricing and attributes come from the variant
EXISTING_VARIANT_FIELDS = {"productVariantId", "supplierId", "quantityInStock"}

ATTRIBUTE_DATA_TYPES = {"string", "number", "boolean", "enum"}


class CategoryNotFoundError(NotFoundError):
    pass


class SubcategoryNotFoundError(NotFoundError):
    pass


class DuplicateProductError(ConflictError):
    """The supplier already has a SKU for this variant."""


def get_product_by_sku(sku) -> Product:
    if not isinstance(sku, str) or not sku.strip():
        raise ProductNotFoundError("Product not found")
    product = (
        db.session.query(Product)
        .options(joinedload(Product.variant), joinedload(Product.supplier))
        .filter(Product.sku == sku.strip())
        .one_or_none()
    )
    if product is None:
        raise ProductNotFoundError(f"Product not found for SKU: {sku.strip()}")
    return product


# ---------------------------------------------------------------------------
# SKU generation
# ---------------------------------------------------------------------------

def sku_prefix(category: Category) -> str:
    """Category slug (or cat-<id head>), lower-cased, whitespace to '-', other symbols dropped."""
    base = category.slug or f"cat-{category.id[:6]}"
    base = re.sub(r"\s+", "-", base.lower())
    return re.sub(r"[^a-z0-9-]", "", base)


def attribute_short_codes(attributes) -> str:
    """
    First three characters of each non-null attribute value, ordered by key.

    {"color": "Red", "origin": "Banaras"} -> "red-ban"
    """
    if not isinstance(attributes, dict):
        return ""
    codes = []
    for key in sorted(attributes):
        value = attributes[key]
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        codes.append(str(value)[:3].lower())
    return "-".join(codes)


def next_category_counter(category_id: str) -> int:
    """One more than the highest trailing numeric segment among the category's SKUs."""
    rows = (
        db.session.query(Product.sku)
        .join(ProductVariant, Product.product_variant_id == ProductVariant.id)
        .filter(ProductVariant.category_id == category_id)
        .all()
    )
    highest = 0
    for (sku,) in rows:
        last = sku.rsplit("-", 1)[-1]
        if last.isdigit():
            highest = max(highest, int(last))
    return highest + 1


def generate_sku(category: Category, attributes) -> str:
    """<prefix>-<attribute codes>-<NNNN>, e.g. saree-red-ban-0001."""
    prefix = sku_prefix(category)
    codes = attribute_short_codes(attributes)
    base = f"{prefix}-{codes}" if codes else prefix
    counter = next_category_counter(category.id)
    return f"{base}-{counter:0{SKU_COUNTER_PAD}d}"


# ---------------------------------------------------------------------------
# Attribute validation
# ---------------------------------------------------------------------------

def _check_attribute_value(definition: AttributeDefinition, value) -> None:
    key = definition.key
    data_type = definition.data_type or "string"

    if data_type == "string":
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"attributes.{key} must be a non-empty string")
    elif data_type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"attributes.{key} must be a number")
    elif data_type == "boolean":
        if not isinstance(value, bool):
            raise ValidationError(f"attributes.{key} must be true or false")
    elif data_type == "enum":
        allowed = definition.enum_values or []
        if value not in allowed:
            raise ValidationError(
                f"attributes.{key} must be one of: {', '.join(str(v) for v in allowed)}",
                details={"allowed": allowed},
            )


def validate_attributes(category: Category, attributes: dict) -> None:
    """
    Check attributes against the category's AttributeDefinitions.

    Categories without definitions accept any scalar values. Otherwise
    required keys must be present, unknown keys are rejected and each value
    must match its definition's data_type.
    """
    for key, value in attributes.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("attribute keys must be non-empty strings")
        if isinstance(value, (dict, list)):
            raise ValidationError(f"attributes.{key} must be a scalar value")

    definitions = {d.key: d for d in category.attribute_definitions}
    if not definitions:
        return

    unknown = sorted(k for k in attributes if k not in definitions)
    if unknown:
        raise ValidationError(
            f"Unknown attributes for category {category.name}: {', '.join(unknown)}",
            details={"unknown": unknown},
        )

    missing = sorted(k for k, d in definitions.items() if d.required and attributes.get(k) is None)
    if missing:
        raise ValidationError(
            f"Missing required attributes: {', '.join(missing)}",
            details={"missing": missing},
        )

    for key, value in attributes.items():
        if value is not None:
            _check_attribute_value(definitions[key], value)


# ---------------------------------------------------------------------------
# Product creation
# ---------------------------------------------------------------------------

def _parse_pricing(payload: dict) -> tuple[Decimal, Decimal, Decimal]:
    missing = [f for f in ("mrp", "defaultSellingPrice", "maxDiscountPercent") if payload.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    mrp = coerce_money(payload["mrp"], "mrp")
    default_selling_price = coerce_money(payload["defaultSellingPrice"], "defaultSellingPrice")
    max_discount_percent = coerce_money(payload["maxDiscountPercent"], "maxDiscountPercent")

    if default_selling_price > mrp:
        raise ValidationError("defaultSellingPrice must be <= mrp")
    if max_discount_percent > 100:
        raise ValidationError("maxDiscountPercent must be between 0 and 100")
    return mrp, default_selling_price, max_discount_percent


def _create_variant(payload: dict) -> ProductVariant:
    if payload.get("categoryId") is None:
        raise ValidationError("Missing required fields: categoryId")
    category_id = coerce_str(payload["categoryId"], "categoryId")
    subcategory_id = coerce_optional_str(payload.get("subcategoryId"), "subcategoryId")

    attributes = payload.get("attributes")
    if attributes is None:
        attributes = {}
    if not isinstance(attributes, dict):
        raise ValidationError("attributes must be a JSON object")

    mrp, default_selling_price, max_discount_percent = _parse_pricing(payload)

    category = db.session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(f"Category not found: {category_id}")
    if subcategory_id is not None:
        subcategory = db.session.get(Subcategory, subcategory_id)
        if subcategory is None or subcategory.category_id != category.id:
            raise SubcategoryNotFoundError(f"Subcategory not found in category: {subcategory_id}")

    validate_attributes(category, attributes)

    variant = ProductVariant(
        category_id=category.id,
        subcategory_id=subcategory_id,
        attributes=dict(attributes),
        mrp=mrp,
        default_selling_price=default_selling_price,
        max_discount_percent=max_discount_percent,
    )
    variant.category = category
    db.session.add(variant)
    db.session.flush()
    return variant


def _record_product(payload: dict) -> dict:
    if payload.get("supplierId") is None:
        raise ValidationError("Missing required fields: supplierId")
    supplier_id = coerce_str(payload["supplierId"], "supplierId")

    quantity = 0
    if payload.get("quantityInStock") is not None:
        quantity = coerce_int(payload["quantityInStock"], "quantityInStock", minimum=0)

    if db.session.get(Supplier, supplier_id) is None:
        raise SupplierNotFoundError(f"Supplier not found: {supplier_id}")

    if payload.get("productVariantId") is not None:
        reject_unknown_fields(payload, EXISTING_VARIANT_FIELDS)
        variant_id = coerce_str(payload["productVariantId"], "productVariantId")
        variant = db.session.get(ProductVariant, variant_id)
        if variant is None:
            raise VariantNotFoundError(f"Product variant not found: {variant_id}")
        existing = (
            db.session.query(Product.sku)
            .filter_by(product_variant_id=variant.id, supplier_id=supplier_id)
            .scalar()
        )
        if existing is not None:
            raise DuplicateProductError(
                f"Supplier already stocks this variant as SKU {existing}",
                details={"sku": existing},
            )
    else:
        variant = _create_variant(payload)

    product = Product(
        sku=generate_sku(variant.category, variant.attributes),
        product_variant_id=variant.id,
        supplier_id=supplier_id,
        quantity_in_stock=quantity,
    )
    db.session.add(product)
    db.session.flush()

    return {"productId": product.id, "sku": product.sku, "productVariantId": variant.id}


def create_product(payload) -> dict:
    """
    Create a ProductVariant and its first SKU, or, when productVariantId is
    given, a new supplier SKU for that existing variant.

    Returns {productId, sku, productVariantId}.
    """
    payload = require_object(payload)
    reject_unknown_fields(payload, PRODUCT_FIELDS)
    return run_in_transaction(lambda: _record_product(payload))
