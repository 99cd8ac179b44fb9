from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z


CATEGORY_STANDARD = "standard"
CATEGORY_IRON = "iron"
CATEGORY_CERAMIC = "ceramic"

PRODUCT_CATEGORIES = (
    CATEGORY_STANDARD,
    CATEGORY_IRON,
    CATEGORY_CERAMIC,
    "food",
    "beverages",
    "electronics",
    "energy",
    "building_materials",
    "blocks",
    "clothing",
    "other",
)


def _num(value):
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product master data.

    STOCK COUNTERS:
    A product carries three counters but only one of them is authoritative:
    - quantity: unit count for ordinary goods
    - stock_barre: bar count for iron (and legacy miscategorized bar stock)
    - stock_boite: box count for ceramics

    Which one governs availability is decided by
    services.stock_resolver.resolve_stock_field(); never read or write a
    counter directly when selling or restoring stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(32), nullable=False, default=CATEGORY_STANDARD)
    unit = db.Column(db.String(32), nullable=False, default="unit")

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="HTG")

    # Cost basis; snapshotted onto each SaleItem at sale time
    purchase_price = db.Column(db.Numeric(12, 2), nullable=True)

    quantity = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock_barre = db.Column(db.Numeric(12, 2), nullable=True)
    stock_boite = db.Column(db.Numeric(12, 2), nullable=True)

    alert_threshold = db.Column(db.Numeric(12, 2), nullable=False, default=10)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "price": _num(self.price),
            "currency": self.currency,
            "purchase_price": _num(self.purchase_price),
            "quantity": _num(self.quantity),
            "stock_barre": _num(self.stock_barre),
            "stock_boite": _num(self.stock_boite),
            "alert_threshold": _num(self.alert_threshold),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
