from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

ORDER_PENDING = "pending"
ORDER_PREPARING = "preparing"
ORDER_READY = "ready"
ORDER_DELIVERED = "delivered"
ORDER_CANCELED = "canceled"

VALID_ORDER_STATUSES = [
    ORDER_PENDING,
    ORDER_PREPARING,
    ORDER_READY,
    ORDER_DELIVERED,
    ORDER_CANCELED,
]
TERMINAL_ORDER_STATUSES = {ORDER_DELIVERED, ORDER_CANCELED}

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"
PAYMENT_FAILED = "failed"

# Which inventory side effect the order last triggered
STOCK_NONE = "none"
STOCK_RESERVED = "reserved"
STOCK_FINALIZED = "finalized"
STOCK_RELEASED = "released"


class Order(db.Model):
    """
    Customer order (table, counter or delivery).

    LIFECYCLE:
        pending -> preparing -> ready -> delivered
        any non-terminal state -> canceled

    delivered and canceled are terminal. Orders are historical records and
    are never deleted.

    stock_status tracks reservation progress so that repeated or backward
    status changes never release or finalize the same stock twice.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        db.Index("ix_orders_checkout", "status", "payment_status", "completed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id"), nullable=True, index=True)
    table_number = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(128), nullable=True)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)
    stock_status = db.Column(db.String(16), nullable=False, default=STOCK_NONE)

    delivery = db.Column(db.Boolean, nullable=False, default=False)
    address = db.Column(db.String(255), nullable=True)

    payment_method = db.Column(db.String(16), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING, index=True)
    # Weak reference to payments.id (payments already point back at the order)
    payment_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    table = db.relationship("DiningTable", foreign_keys=[table_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def recalculate_total(self) -> int:
        self.total_cents = sum(item.line_total_cents for item in self.items)
        return self.total_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table_id": self.table_id,
            "table_number": self.table_number,
            "user_id": self.user_id,
            "customer_name": self.customer_name,
            "items": [item.to_dict() for item in self.items],
            "total_cents": self.total_cents,
            "status": self.status,
            "stock_status": self.stock_status,
            "delivery": self.delivery,
            "address": self.address,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "payment_id": self.payment_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "completed_at": to_utc_z(self.completed_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Line on an order. Owned by the order; price is snapshotted at creation."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    observations = db.Column(db.String(255), nullable=True)

    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "observations": self.observations,
        }
