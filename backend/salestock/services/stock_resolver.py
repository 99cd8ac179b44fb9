# Overview: Maps a product to the single stock counter that governs it.

"""
Stock field resolution (authoritative)

A Product carries three counters (quantity, stock_barre, stock_boite) and
exactly one of them governs availability and mutation. Selection, in
priority order:

1. category == ceramic and stock_boite is set  -> stock_boite
2. category == iron and stock_barre is set     -> stock_barre
3. stock_barre is set and > 0                  -> stock_barre
   (legacy fallback: bar stock entered on a product in another category)
4. otherwise                                   -> quantity

Selling, restocking and stock alerts go through resolve_stock_field().
A sale reversal restores into the counter recorded on the sale's "out"
movements, since rule 3 stops applying once stock_barre reaches 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..models import Product
from ..models.products import CATEGORY_CERAMIC, CATEGORY_IRON


FIELD_QUANTITY = "quantity"
FIELD_STOCK_BARRE = "stock_barre"
FIELD_STOCK_BOITE = "stock_boite"


@dataclass(frozen=True)
class StockAccessor:
    """Read access to one stock counter of Product, plus its mapped column."""

    field: str

    @property
    def column(self):
        return getattr(Product, self.field)

    def read(self, product: Product) -> Decimal:
        value = getattr(product, self.field)
        return Decimal(value) if value is not None else Decimal("0")


QUANTITY = StockAccessor(FIELD_QUANTITY)
STOCK_BARRE = StockAccessor(FIELD_STOCK_BARRE)
STOCK_BOITE = StockAccessor(FIELD_STOCK_BOITE)


def resolve_stock_field(product: Product) -> StockAccessor:
    if product.category == CATEGORY_CERAMIC and product.stock_boite is not None:
        return STOCK_BOITE
    if product.category == CATEGORY_IRON and product.stock_barre is not None:
        return STOCK_BARRE
    if product.stock_barre is not None and product.stock_barre > 0:
        return STOCK_BARRE
    return QUANTITY


def available_stock(product: Product) -> Decimal:
    """Current value of the product's authoritative counter."""
    return resolve_stock_field(product).read(product)
