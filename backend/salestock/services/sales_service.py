"""
Sale Transaction Processor

create_sale() validates a cart against current stock, then records the
sale, its items, the stock decrements and the audit trail in a single
transaction.

Sales are not idempotent: submitting the same cart twice records two sales
and decrements stock twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from ..errors import InsufficientStockError, ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem, User
from ..models.ledger import MOVEMENT_OUT
from ..validation import Cart, CartLine, parse_cart
from . import currency_service
from .activity_service import ACTION_SALE_CREATED, record_activity
from .concurrency import UnitOfWork, lock_for_update
from .settings_service import CurrencySettings, get_currency_settings
from .stock_ledger_service import append_stock_movement, decrement_stock
from .stock_resolver import StockAccessor, resolve_stock_field

# Accepted gap between caller-supplied totals and the recomputed ones
TOTALS_TOLERANCE = Decimal("0.01")


def _check_actor(actor: User | None) -> None:
    if actor is None or actor.id is None:
        raise ValidationError("Authenticated seller required")
    if not actor.is_active:
        raise ValidationError("Seller account is inactive")


def _verify_totals(cart: Cart, settings: CurrencySettings) -> None:
    """
    The stored totals must be reconstructible from the lines.

    subtotal        = unified sum of line subtotals
    discount_amount = discount derived from type/value, capped at subtotal
    total_amount    = (subtotal - discount) with flat tax applied
    """
    unified = currency_service.unify(cart.items, settings.usd_htg_rate, settings.display_currency)
    expected_discount = currency_service.compute_discount(
        unified.unified_total, cart.discount_type, cart.discount_value
    )
    totals = currency_service.calculate_sale_total(
        cart.items,
        expected_discount,
        settings.usd_htg_rate,
        settings.display_currency,
        settings.tva_rate,
    )

    mismatches = {}
    if abs(cart.subtotal - totals.subtotal_ht) > TOTALS_TOLERANCE:
        mismatches["subtotal"] = float(totals.subtotal_ht)
    if abs(cart.discount_amount - totals.discount) > TOTALS_TOLERANCE:
        mismatches["discount_amount"] = float(totals.discount)
    if abs(cart.total_amount - totals.total_ttc) > TOTALS_TOLERANCE:
        mismatches["total_amount"] = float(totals.total_ttc)

    if mismatches:
        raise ValidationError(
            "Cart totals do not match its items",
            details={"expected": mismatches, "currency": settings.display_currency},
        )


def _validate_availability(cart: Cart) -> dict[int, tuple[Product, StockAccessor]]:
    """
    Read-only pass: every product exists and its resolved counter covers
    the total requested across the cart. Nothing is written.

    The counter is resolved once per product here and reused for every
    line of that product, so lines of one sale never split across counters.
    """
    products: dict[int, tuple[Product, StockAccessor]] = {}
    shortages = []

    for product_id, requested in cart.requested_by_product.items():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ValidationError("Product not found", details={"product_id": product_id})
        accessor = resolve_stock_field(product)
        products[product_id] = (product, accessor)

        available = accessor.read(product)
        if available < requested:
            shortages.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested": float(requested),
                "available": float(available),
            })

    if shortages:
        first = shortages[0]
        raise InsufficientStockError(
            first["product_id"],
            cart.requested_by_product[first["product_id"]],
            Decimal(str(first["available"])),
            product_name=first["product_name"],
            shortages=shortages,
        )

    return products


def _record_line(sale: Sale, line: CartLine, product: Product, accessor: StockAccessor, actor: User) -> SaleItem:
    # Cost basis as of now, not as of validation
    db.session.refresh(product, ["purchase_price"])
    purchase_price = Decimal(product.purchase_price or 0)

    item = SaleItem(
        sale_id=sale.id,
        product_id=product.id,
        product_name=line.product_name or product.name,
        unit=line.unit or product.unit,
        quantity=line.quantity,
        unit_price=line.unit_price,
        subtotal=line.subtotal,
        currency=line.currency,
        purchase_price_at_sale=purchase_price,
        profit_amount=(line.unit_price - purchase_price) * line.quantity,
    )
    db.session.add(item)
    db.session.flush()

    change = decrement_stock(product, accessor, line.quantity)
    append_stock_movement(
        product_id=product.id,
        movement_type=MOVEMENT_OUT,
        change=change,
        reason=f"Sale #{sale.id}",
        sale_id=sale.id,
        created_by=actor.id,
    )

    current_app.logger.debug(
        "Sale %s: %s %s %s -> %s", sale.id, item.product_name, change.field, change.previous, change.new
    )
    return item


def create_sale(actor: User, cart: Cart) -> Sale:
    """
    Record a sale for actor.

    Raises:
    - ValidationError: bad actor, cart or totals, unknown product
    - InsufficientStockError: a product lacks stock (validation pass)
    - StockChangedError: stock was consumed concurrently (decrement)

    All writes happen in one transaction; on any error nothing is kept.
    """
    _check_actor(actor)
    if not cart.items:
        raise ValidationError("Cart must contain at least one item")

    settings = get_currency_settings()
    _verify_totals(cart, settings)

    with UnitOfWork():
        products = _validate_availability(cart)

        sale = Sale(
            seller_id=actor.id,
            customer_name=cart.customer_name,
            customer_address=cart.customer_address,
            payment_method=cart.payment_method,
            subtotal=cart.subtotal,
            discount_type=cart.discount_type,
            discount_value=cart.discount_value,
            discount_amount=cart.discount_amount,
            total_amount=cart.total_amount,
            currency=settings.display_currency,
        )
        db.session.add(sale)
        db.session.flush()

        for line in cart.items:
            product, accessor = products[line.product_id]
            _record_line(sale, line, product, accessor, actor)

        record_activity(
            action_type=ACTION_SALE_CREATED,
            entity_type="sale",
            entity_id=sale.id,
            user_id=actor.id,
            description=(
                f"Sale of {cart.total_amount:.2f} {settings.display_currency} created by "
                f"{actor.full_name or 'Seller'} for {cart.customer_name or 'walk-in customer'}"
            ),
            metadata={
                "total_amount": float(cart.total_amount),
                "items_count": len(cart.items),
                "payment_method": cart.payment_method,
            },
        )

    current_app.logger.info(
        "Sale %s created by user %s: %d item(s), total %s %s",
        sale.id, actor.id, len(cart.items), cart.total_amount, settings.display_currency,
    )
    return sale


def create_sale_from_payload(actor: User, data) -> Sale:
    return create_sale(actor, parse_cart(data))


def get_sale_totals(sale: Sale, settings: CurrencySettings | None = None) -> currency_service.SaleTotals:
    """Display totals for a stored sale, in the current display currency."""
    settings = settings or get_currency_settings()
    return currency_service.calculate_sale_total(
        sale.items,
        sale.discount_amount,
        settings.usd_htg_rate,
        settings.display_currency,
        settings.tva_rate,
        discount_currency=sale.currency,
    )


@dataclass
class SalePage:
    sales: list[Sale] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50


def list_sales(actor: User, *, page: int = 1, page_size: int = 50) -> SalePage:
    """Admins see every sale, sellers only their own. Newest first. page and page_size are clamped."""
    q = Sale.query
    if not actor.is_admin:
        q = q.filter(Sale.seller_id == actor.id)
    page = max(1, page)
    page_size = max(1, min(page_size, 200))
    total = q.count()
    rows = (
        q.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return SalePage(sales=rows, total=total, page=page, page_size=page_size)
