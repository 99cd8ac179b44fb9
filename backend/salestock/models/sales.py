from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z
from .products import _num


DISCOUNT_NONE = "none"
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_AMOUNT = "amount"
DISCOUNT_TYPES = (DISCOUNT_NONE, DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT)


class Sale(db.Model):
    """
    Completed sale.

    Created together with its items by sales_service.create_sale() and never
    updated afterwards. The only way to remove one is
    reversal_service.delete_sale(), which restores stock first.

    Amounts are expressed in the display currency that was active when the
    cart was totalled; total_amount is tax-inclusive.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_seller_created", "seller_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_type = db.Column(db.String(16), nullable=False, default=DISCOUNT_NONE)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    # Display currency the amounts above are expressed in
    currency = db.Column(db.String(3), nullable=False, default="HTG")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    seller = db.relationship("User")
    items = db.relationship("SaleItem", back_populates="sale", lazy=True, order_by="SaleItem.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address,
            "payment_method": self.payment_method,
            "subtotal": _num(self.subtotal),
            "discount_type": self.discount_type,
            "discount_value": _num(self.discount_value),
            "discount_amount": _num(self.discount_amount),
            "total_amount": _num(self.total_amount),
            "currency": self.currency,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """One product line of a sale, with a profit snapshot."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # Reference only: products may be deleted while the sale lives on
    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=True)

    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="HTG")

    purchase_price_at_sale = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    profit_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit": self.unit,
            "quantity": _num(self.quantity),
            "unit_price": _num(self.unit_price),
            "subtotal": _num(self.subtotal),
            "currency": self.currency,
            "purchase_price_at_sale": _num(self.purchase_price_at_sale),
            "profit_amount": _num(self.profit_amount),
        }
