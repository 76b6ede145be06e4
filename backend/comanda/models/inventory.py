from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

TX_IN = "in"
TX_OUT = "out"
TX_RESERVED = "reserved"
TX_RELEASED = "released"

VALID_TRANSACTION_TYPES = [TX_IN, TX_OUT, TX_RESERVED, TX_RELEASED]

REASON_PURCHASE = "purchase"
REASON_SALE = "sale"
REASON_ADJUSTMENT = "adjustment"
REASON_RETURN = "return"
REASON_LOSS = "loss"

VALID_REASONS = [REASON_PURCHASE, REASON_SALE, REASON_ADJUSTMENT, REASON_RETURN, REASON_LOSS]


class InventoryTransaction(db.Model):
    """
    Append-only stock movement record.

    One row per successful stock mutation. previous_quantity/new_quantity
    capture stock_quantity around the movement, except for finalization rows
    ("out" against an order) which capture the reserved counter instead.

    Rows are never updated or deleted; the mapper listeners below refuse it.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_inventory_txns_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(16), nullable=False)

    # Weak reference; orders are never deleted but the ledger does not depend on them
    order_id = db.Column(db.Integer, nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, nullable=False)

    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("inventory_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "order_id": self.order_id,
            "notes": self.notes,
            "user_id": self.user_id,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(InventoryTransaction, "before_update")
def _refuse_update(mapper, connection, target):
    raise ValueError(f"InventoryTransaction {target.id} is immutable")


@event.listens_for(InventoryTransaction, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ValueError(f"InventoryTransaction {target.id} cannot be deleted")
