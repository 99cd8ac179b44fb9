"""
Sale Reversal Processor

delete_sale() undoes a sale: stock goes back to the counters it was taken
from, the sale and its items are removed, and the ledger keeps its history.

Ledger handling:
- the original "out" movements stay; only their sale_id is nulled
- each restored item appends a new "in" movement without a sale reference
- stock goes back to the counter named on the sale's "out" movement, even
  if the product would resolve to another counter today

Failure handling:
- an item whose product no longer exists is skipped and reported as a
  PartialStockRestoreFailure; the rest of the reversal proceeds
- any other error rolls back the whole reversal and raises
  ReversalFailedError, so no restoration survives a failed reversal
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    PartialStockRestoreFailure,
    PermissionDeniedError,
    ReversalFailedError,
    SaleNotFoundError,
)
from ..extensions import db
from ..models import Product, Sale, SaleItem, User
from ..models.ledger import MOVEMENT_IN
from .activity_service import ACTION_SALE_DELETED, record_activity
from .concurrency import UnitOfWork, lock_for_update
from .stock_ledger_service import (
    append_stock_movement,
    detach_sale_movements,
    increment_stock,
    sale_stock_fields,
)
from .stock_resolver import StockAccessor, resolve_stock_field


@dataclass
class RestoreSummary:
    sale_id: int
    restored_products: int = 0
    total_items: int = 0
    failures: list[PartialStockRestoreFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"Sale deleted. {self.restored_products} product(s) returned to stock."

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": self.message,
            "restoredProducts": self.restored_products,
            "total_items": self.total_items,
            "failures": [f.to_dict() for f in self.failures],
        }


def _restore_item(
    sale_id: int,
    item: SaleItem,
    actor: User,
    decremented: StockAccessor | None = None,
) -> PartialStockRestoreFailure | None:
    product = lock_for_update(db.session.query(Product).filter_by(id=item.product_id)).first()
    if product is None:
        return PartialStockRestoreFailure(
            sale_item_id=item.id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=Decimal(item.quantity),
            reason="product no longer exists",
        )

    # Restore into the counter the sale took from; resolve only for sales without out movements
    accessor = decremented or resolve_stock_field(product)
    change = increment_stock(product, accessor, Decimal(item.quantity))
    append_stock_movement(
        product_id=product.id,
        movement_type=MOVEMENT_IN,
        change=change,
        reason=f"Stock restoration - sale #{sale_id} deleted",
        sale_id=None,
        created_by=actor.id,
    )
    current_app.logger.info(
        "Sale %s reversal: product %s %s %s -> %s",
        sale_id, product.id, change.field, change.previous, change.new,
    )
    return None


def delete_sale(actor: User, sale_id: int) -> RestoreSummary:
    """
    Reverse and delete a sale. Requires an active admin.

    Raises PermissionDeniedError, SaleNotFoundError or ReversalFailedError.
    """
    if actor is None or not actor.is_active or not actor.is_admin:
        raise PermissionDeniedError("Only administrators can delete sales")

    summary = RestoreSummary(sale_id=sale_id)

    try:
        with UnitOfWork():
            sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
            if sale is None:
                raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})

            items = db.session.query(SaleItem).filter_by(sale_id=sale_id).order_by(SaleItem.id).all()
            summary.total_items = len(items)
            if not items:
                current_app.logger.warning("Sale %s has no items; deleting without stock restoration", sale_id)

            decremented = sale_stock_fields(sale_id)
            for item in items:
                failure = _restore_item(sale_id, item, actor, decremented.get(item.product_id))
                if failure is None:
                    summary.restored_products += 1
                else:
                    summary.failures.append(failure)
                    current_app.logger.warning(
                        "Sale %s reversal: skipped item %s (product %s): %s",
                        sale_id, item.id, item.product_id, failure.reason,
                    )

            db.session.query(SaleItem).filter_by(sale_id=sale_id).delete(synchronize_session=False)
            detach_sale_movements(sale_id)
            db.session.query(Sale).filter_by(id=sale_id).delete(synchronize_session=False)

            record_activity(
                action_type=ACTION_SALE_DELETED,
                entity_type="sale",
                entity_id=sale_id,
                user_id=actor.id,
                description=f"Sale deleted, {summary.restored_products} product(s) restored to stock",
                metadata={
                    "sale_id": sale_id,
                    "restored_products": summary.restored_products,
                    "total_items": summary.total_items,
                    "skipped_products": [f.product_id for f in summary.failures],
                },
            )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Reversal of sale %s failed", sale_id)
        raise ReversalFailedError(
            "Sale deletion failed; no changes were kept",
            details={"sale_id": sale_id},
        ) from exc

    current_app.logger.info(
        "Sale %s deleted by user %s; restored %d of %d item(s)",
        sale_id, actor.id, summary.restored_products, summary.total_items,
    )
    return summary
