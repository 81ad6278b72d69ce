from __future__ import annotations

from ..extensions import db
from .catalog import new_id
from retail_pos.money import to_decimal
from retail_pos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed sale (bill). Created once inside the sale transaction.

    bill_number format: BILL-YYYYMMDD-NNNN, sequential per UTC day.
    """
    __tablename__ = "sales"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    bill_number = db.Column(db.String(64), nullable=False, unique=True, index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship("SaleItem", backref="sale", lazy=True, cascade="all, delete-orphan")
    payments = db.relationship("Payment", backref="sale", lazy=True, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} bill_number={self.bill_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "billNumber": self.bill_number,
            "totalAmount": to_decimal(self.total_amount),
            "soldAt": to_utc_z(self.sold_at),
        }


class SaleItem(db.Model):
    """Line item: line_total = quantity * unit_price rounded to cents."""
    __tablename__ = "sale_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "unitPrice": to_decimal(self.unit_price),
            "lineTotal": to_decimal(self.line_total),
        }


class Payment(db.Model):
    """
    Tender applied to a sale.

    MODES (free-form, reported as-is): CASH, CARD, UPI_N, UPI_S, ...
    Split tender = several Payment rows for one sale.
    """
    __tablename__ = "payments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    mode = db.Column(db.String(32), nullable=False)
    provider = db.Column(db.String(64), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "mode": self.mode,
            "provider": self.provider,
            "amount": to_decimal(self.amount),
        }
