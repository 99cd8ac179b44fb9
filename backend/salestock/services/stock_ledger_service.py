# Overview: Service-layer operations for the stock ledger; counter mutation and movement history.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..errors import PermissionDeniedError, StockChangedError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement, User
from ..models.ledger import MOVEMENT_IN, MOVEMENT_OUT
from .activity_service import ACTION_STOCK_ADJUSTED, record_activity
from .concurrency import UnitOfWork, lock_for_update
from .stock_resolver import StockAccessor, available_stock, resolve_stock_field

"""
Stock ledger invariants (authoritative)

- Product counters are only changed through decrement_stock() and
  increment_stock(), each a single conditional/atomic UPDATE.
- Every change appends exactly one StockMovement in the same transaction.
- StockMovement rows are never deleted. The only permitted update is
  nulling sale_id when the referenced sale is deleted.
- Nothing here commits except restock_product(); callers own the transaction.
"""

ALERT_WARNING_FACTOR = Decimal("1.5")


@dataclass(frozen=True)
class StockChange:
    field: str
    previous: Decimal
    new: Decimal


def _read_back(product: Product, accessor: StockAccessor) -> Decimal:
    db.session.expire(product, [accessor.field])
    return accessor.read(product)


def decrement_stock(product: Product, accessor: StockAccessor, quantity: Decimal) -> StockChange:
    """
    Atomically subtract quantity from the resolved counter.

    The UPDATE only matches while the stored value still covers quantity.
    A zero-row result means another transaction consumed the stock after
    validation: raise StockChangedError and let the caller roll back.
    """
    column = accessor.column
    matched = (
        db.session.query(Product)
        .filter(Product.id == product.id, column.isnot(None), column >= quantity)
        .update({column: column - quantity}, synchronize_session=False)
    )
    if not matched:
        available = _read_back(product, accessor)
        raise StockChangedError(
            product.id,
            quantity,
            available,
            product_name=product.name,
        )

    new_value = _read_back(product, accessor)
    return StockChange(field=accessor.field, previous=new_value + quantity, new=new_value)


def increment_stock(product: Product, accessor: StockAccessor, quantity: Decimal) -> StockChange:
    column = accessor.column
    db.session.query(Product).filter(Product.id == product.id).update(
        {column: func.coalesce(column, 0) + quantity},
        synchronize_session=False,
    )
    new_value = _read_back(product, accessor)
    return StockChange(field=accessor.field, previous=new_value - quantity, new=new_value)


def append_stock_movement(
    *,
    product_id: int,
    movement_type: str,
    change: StockChange,
    reason: str,
    sale_id: int | None = None,
    created_by: int | None = None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity=change.new - change.previous,
        previous_quantity=change.previous,
        new_quantity=change.new,
        stock_field=change.field,
        reason=reason,
        sale_id=sale_id,
        created_by=created_by,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def sale_stock_fields(sale_id: int) -> dict[int, StockAccessor]:
    """Counter each product of a sale was decremented from, read off its "out" movements."""
    rows = (
        db.session.query(StockMovement.product_id, StockMovement.stock_field)
        .filter(StockMovement.sale_id == sale_id, StockMovement.movement_type == MOVEMENT_OUT)
        .order_by(StockMovement.id.asc())
        .all()
    )
    return {product_id: StockAccessor(stock_field) for product_id, stock_field in rows}


def detach_sale_movements(sale_id: int) -> int:
    """Drop the sale reference from its movements; the rows themselves stay."""
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.sale_id == sale_id)
        .update({StockMovement.sale_id: None}, synchronize_session=False)
    )


def restock_product(actor: User, product_id: int, quantity, reason: str | None = None) -> StockMovement:
    """
    Manual restock through the resolved counter.

    Requires an admin. Appends an "in" movement and a stock_adjusted
    activity entry, and commits.
    """
    if actor is None or not actor.is_admin:
        raise PermissionDeniedError("Only administrators can restock products")

    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationError("quantity must be greater than zero")

    with UnitOfWork():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ValidationError("Product not found", details={"product_id": product_id})

        accessor = resolve_stock_field(product)
        change = increment_stock(product, accessor, quantity)
        movement = append_stock_movement(
            product_id=product.id,
            movement_type=MOVEMENT_IN,
            change=change,
            reason=(reason or "").strip() or "Manual restock",
            created_by=actor.id,
        )
        record_activity(
            action_type=ACTION_STOCK_ADJUSTED,
            entity_type="product",
            entity_id=product.id,
            user_id=actor.id,
            description=f"{product.name} restocked (+{quantity})",
            metadata={
                "stock_field": change.field,
                "previous_quantity": float(change.previous),
                "new_quantity": float(change.new),
            },
        )

    current_app.logger.info(
        "Restocked product %s %s: %s -> %s", product_id, change.field, change.previous, change.new
    )
    return movement


def list_stock_movements(
    *,
    product_id: int | None = None,
    sale_id: int | None = None,
    movement_type: str | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    q = StockMovement.query
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if sale_id is not None:
        q = q.filter(StockMovement.sale_id == sale_id)
    if movement_type in (MOVEMENT_IN, MOVEMENT_OUT):
        q = q.filter(StockMovement.movement_type == movement_type)

    return q.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()


def get_stock_alerts() -> list[dict]:
    """
    Low-stock alerts for active products, most urgent first.

    - empty                     -> critical
    - at or below threshold     -> critical
    - up to 1.5x the threshold  -> warning
    """
    alerts = []
    products = Product.query.filter(Product.is_active.is_(True)).order_by(Product.name.asc()).all()
    for product in products:
        stock = available_stock(product)
        threshold = Decimal(product.alert_threshold or 0)

        if stock <= 0:
            severity, message = "critical", f"Out of stock: {product.name}"
        elif stock <= threshold:
            severity, message = "critical", f"Critical stock: {product.name} ({stock} left)"
        elif stock <= threshold * ALERT_WARNING_FACTOR:
            severity, message = "warning", f"Low stock: {product.name} ({stock} left)"
        else:
            continue

        alerts.append({
            "product_id": product.id,
            "product_name": product.name,
            "stock_field": resolve_stock_field(product).field,
            "available": float(stock),
            "alert_threshold": float(threshold),
            "severity": severity,
            "message": message,
        })

    alerts.sort(key=lambda a: (a["severity"] != "critical", a["available"]))
    return alerts
