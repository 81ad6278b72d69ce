from __future__ import annotations

import uuid

from ..extensions import db
from retail_pos.money import to_decimal
from retail_pos.time_utils import to_utc_z


def new_id() -> str:
    return str(uuid.uuid4())


class Category(db.Model):
    """Groups product variants; owns subcategories and attribute definitions."""
    __tablename__ = "categories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(128), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    subcategories = db.relationship(
        "Subcategory", backref="category", lazy=True, cascade="all, delete-orphan"
    )
    attribute_definitions = db.relationship(
        "AttributeDefinition", backref="category", lazy=True, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "slug": self.slug}


class Subcategory(db.Model):
    __tablename__ = "subcategories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_id = db.Column(
        db.String(36), db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(128), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "category_id": self.category_id, "name": self.name, "slug": self.slug}


class AttributeDefinition(db.Model):
    """
    Attribute a category's variants may carry (e.g. color, origin).

    DATA TYPES:
    - string: any non-empty string
    - number: int or float (not bool)
    - boolean: true/false
    - enum: one of enum_values
    """
    __tablename__ = "attribute_definitions"
    __table_args__ = (
        db.UniqueConstraint("category_id", "key", name="uq_attribute_definitions_category_key"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_id = db.Column(db.String(36), db.ForeignKey("categories.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    key = db.Column(db.String(64), nullable=False)
    data_type = db.Column(db.String(16), nullable=False, default="string")
    required = db.Column(db.Boolean, nullable=False, default=False)
    analytics_enabled = db.Column(db.Boolean, nullable=False, default=False)
    enum_values = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "key": self.key,
            "data_type": self.data_type,
            "required": self.required,
            "analytics_enabled": self.analytics_enabled,
            "enum_values": self.enum_values,
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}


class ProductVariant(db.Model):
    """
    Priceable SKU template: category + attributes + pricing.

    INVARIANTS:
    - default_selling_price <= mrp
    - 0 <= max_discount_percent <= 100
    - Identity is fixed once a Product references it.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("default_selling_price <= mrp", name="ck_product_variants_price_within_mrp"),
        db.CheckConstraint(
            "max_discount_percent >= 0 AND max_discount_percent <= 100",
            name="ck_product_variants_discount_range",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_id = db.Column(
        db.String(36), db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subcategory_id = db.Column(
        db.String(36), db.ForeignKey("subcategories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Ordered attribute key -> scalar; opaque except for SKU short-codes
    attributes = db.Column(db.JSON, nullable=False, default=dict)

    mrp = db.Column(db.Numeric(12, 2), nullable=False)
    default_selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    max_discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("variants", lazy=True))
    subcategory = db.relationship("Subcategory")

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} category_id={self.category_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "subcategoryId": self.subcategory_id,
            "attributes": self.attributes or {},
            "mrp": to_decimal(self.mrp),
            "defaultSellingPrice": to_decimal(self.default_selling_price),
            "maxDiscountPercent": to_decimal(self.max_discount_percent),
        }


class Product(db.Model):
    """
    Physical stock-keeping record: one row per (variant, supplier) actually stocked.

    INVARIANT: quantity_in_stock >= 0, enforced inside the mutating transaction
    (locked re-check plus guarded UPDATE), never corrected after the fact.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("product_variant_id", "supplier_id", name="uq_products_variant_supplier"),
        db.CheckConstraint("quantity_in_stock >= 0", name="ck_products_stock_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sku = db.Column(db.String(128), nullable=False, unique=True, index=True)
    product_variant_id = db.Column(
        db.String(36), db.ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=False, index=True)
    quantity_in_stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variant = db.relationship("ProductVariant", backref=db.backref("products", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock={self.quantity_in_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "productVariantId": self.product_variant_id,
            "supplierId": self.supplier_id,
            "quantityInStock": self.quantity_in_stock,
            "variant": self.variant.to_dict() if self.variant else None,
            "supplier": self.supplier.to_dict() if self.supplier else None,
            "updatedAt": to_utc_z(self.updated_at),
        }
