# backend/salestock/services/products_service.py
"""
Products Service

Product master data: listing, lookup and creation. Stock counters are set
only at creation here; afterwards they move through stock_ledger_service.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Product, User
from ..models.ledger import MOVEMENT_IN
from ..models.products import CATEGORY_CERAMIC, CATEGORY_IRON, CATEGORY_STANDARD, PRODUCT_CATEGORIES
from ..validation import AMOUNT_PLACES, optional_text, parse_decimal
from .activity_service import ACTION_PRODUCT_ADDED, record_activity
from .concurrency import UnitOfWork
from .currency_service import normalize_currency
from .stock_ledger_service import StockChange, append_stock_movement
from .stock_resolver import available_stock, resolve_stock_field


def product_view(product: Product) -> dict:
    """Product with the counter that governs its availability."""
    data = product.to_dict()
    data["stock_field"] = resolve_stock_field(product).field
    data["available_stock"] = float(available_stock(product))
    return data


def list_products(*, category: str | None = None, search: str | None = None, include_inactive: bool = False) -> list[Product]:
    q = Product.query
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    if search:
        q = q.filter(Product.name.ilike(f"%{search}%"))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def create_product(actor: User, data: dict) -> Product:
    """
    Create a product. Requires an admin.

    The opening stock lands on the counter the category uses: stock_barre
    for iron, stock_boite for ceramics, quantity otherwise. A non-zero
    opening stock is written to the ledger as an "in" movement.
    """
    if actor is None or not actor.is_admin:
        raise PermissionDeniedError("Only administrators can add products")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    name = optional_text(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required")

    category = data.get("category") or CATEGORY_STANDARD
    if category not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of {', '.join(PRODUCT_CATEGORIES)}")

    try:
        currency = normalize_currency(data.get("currency"))
    except ValueError as exc:
        raise ValidationError(str(exc))

    opening = parse_decimal(data.get("stock"), "stock", allow_none=True, max_places=AMOUNT_PLACES) or Decimal("0")

    product = Product(
        name=name,
        category=category,
        unit=optional_text(data.get("unit"), "unit", max_length=32) or "unit",
        price=parse_decimal(data.get("price"), "price", max_places=AMOUNT_PLACES),
        currency=currency,
        purchase_price=parse_decimal(data.get("purchase_price"), "purchase_price", allow_none=True),
        quantity=Decimal("0"),
        alert_threshold=parse_decimal(data.get("alert_threshold"), "alert_threshold", allow_none=True) or Decimal("10"),
        is_active=True,
    )
    if category == CATEGORY_IRON:
        product.stock_barre = opening
    elif category == CATEGORY_CERAMIC:
        product.stock_boite = opening
    else:
        product.quantity = opening

    with UnitOfWork():
        db.session.add(product)
        db.session.flush()

        if opening > 0:
            append_stock_movement(
                product_id=product.id,
                movement_type=MOVEMENT_IN,
                change=StockChange(field=resolve_stock_field(product).field, previous=Decimal("0"), new=opening),
                reason="Opening stock",
                created_by=actor.id,
            )
        record_activity(
            action_type=ACTION_PRODUCT_ADDED,
            entity_type="product",
            entity_id=product.id,
            user_id=actor.id,
            description=f"Product added: {name}",
            metadata={"category": category, "opening_stock": float(opening)},
        )

    current_app.logger.info("Product %s (%s) created by user %s", product.id, name, actor.id)
    return product
