from __future__ import annotations

from ..extensions import db
from .catalog import new_id
from retail_pos.money import to_decimal
from retail_pos.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Supplier purchase header. Created once, never mutated.

    extra_charges (freight, handling, ...) is spread over the items by quantity
    share when the purchase is recorded; see PurchaseItem.effective_unit_cost.
    """
    __tablename__ = "purchases"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    invoice_no = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    extra_charges = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    items = db.relationship(
        "PurchaseItem", backref="purchase", lazy=True, cascade="all, delete-orphan"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplierId": self.supplier_id,
            "purchasedAt": to_utc_z(self.purchased_at),
            "invoiceNo": self.invoice_no,
            "notes": self.notes,
            "extraCharges": to_decimal(self.extra_charges) if self.extra_charges is not None else None,
            "items": [item.to_dict() for item in self.items],
        }


class PurchaseItem(db.Model):
    """
    One cost layer: quantity bought at effective_unit_cost.

    effective_unit_cost = unit_cost + allocated share of extra_charges,
    computed once at creation and never changed. Average-cost and FIFO
    valuations both read this column.
    """
    __tablename__ = "purchase_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_id = db.Column(
        db.String(36), db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_variant_id = db.Column(
        db.String(36), db.ForeignKey("product_variants.id"), nullable=False, index=True
    )
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(12, 2), nullable=False)
    effective_unit_cost = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "productVariantId": self.product_variant_id,
            "quantity": self.quantity,
            "unitCost": to_decimal(self.unit_cost),
            "effectiveUnitCost": to_decimal(self.effective_unit_cost),
        }
