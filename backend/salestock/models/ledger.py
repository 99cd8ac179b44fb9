from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z
from .products import _num


MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    INVARIANTS:
    - Rows are never updated, except sale_id which is nulled when the
      referenced sale is deleted (history is kept, the link is dropped).
    - Rows are never deleted.
    - quantity is signed: negative for "out", positive for "in".
    - previous_quantity/new_quantity are values of stock_field.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False)
    movement_type = db.Column(db.String(8), nullable=False)

    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    previous_quantity = db.Column(db.Numeric(12, 2), nullable=False)
    new_quantity = db.Column(db.Numeric(12, 2), nullable=False)
    stock_field = db.Column(db.String(16), nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity": _num(self.quantity),
            "previous_quantity": _num(self.previous_quantity),
            "new_quantity": _num(self.new_quantity),
            "stock_field": self.stock_field,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class ActivityLog(db.Model):
    """
    Append-only business event.

    user_id NULL means the event was originated by the system.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_action_created", "action_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    action_type = db.Column(db.String(32), nullable=False)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=False)
    # "metadata" is reserved on declarative classes
    details = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": (self.user.full_name or self.user.username) if self.user else "System",
            "action_type": self.action_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "metadata": self.details or {},
            "created_at": to_utc_z(self.created_at),
        }
