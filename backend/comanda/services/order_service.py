# Overview: Order placement and the order status state machine with its stock and table side effects.

"""
Order Lifecycle Service

================================================================================
STATE MACHINE
================================================================================

    pending -> preparing -> ready -> delivered
    (any non-terminal) -> canceled

RULES:
1. delivered and canceled are terminal: the only accepted target from them is
   the same status (a no-op write).
2. Every other move is accepted, including skips (pending -> ready) and moves
   backwards (ready -> pending). Ordering is not enforced beyond rule 1.
3. Side effects follow the TARGET status:
   - canceled: reserved stock goes back to available
   - ready:    reservations become a completed sale
   - delivered: completed_at is stamped and the table is freed
4. Stock side effects are guarded by Order.stock_status, so each order is
   released or finalized at most once no matter how often its status moves.
5. Status, stock and table writes commit together or not at all.
================================================================================
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..extensions import db
from ..models import Order, OrderItem
from ..models.orders import (
    ORDER_PENDING,
    ORDER_READY,
    ORDER_DELIVERED,
    ORDER_CANCELED,
    VALID_ORDER_STATUSES,
    PAYMENT_PENDING,
    STOCK_RESERVED,
)
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import (
    _get_product,
    _reserve_items_inner,
    _release_order_inner,
    _finalize_order_inner,
)
from .table_service import get_table, occupy_table, release_table

logger = logging.getLogger(__name__)


class OrderError(ValueError):
    """Raised for invalid order input."""
    pass


class OrderNotFoundError(OrderError):
    """Raised when an order id does not resolve."""
    pass


class InvalidTransitionError(OrderError):
    """Raised when a status change is attempted on a finished order."""
    def __init__(self, order_id: int, from_status: str, to_status: str):
        super().__init__(
            f"Cannot change status of a {from_status} order (order {order_id}, requested '{to_status}')"
        )
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status


def validate_status(status: str) -> None:
    if status not in VALID_ORDER_STATUSES:
        raise OrderError(
            f"Invalid status '{status}'. Must be one of: {', '.join(VALID_ORDER_STATUSES)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """Only the terminal-state lock is enforced."""
    validate_status(from_status)
    validate_status(to_status)

    if from_status in (ORDER_CANCELED, ORDER_DELIVERED):
        return to_status == from_status
    return True


# =============================================================================
# ORDER PLACEMENT
# =============================================================================

def _build_item(raw: dict) -> OrderItem:
    product_id = raw.get("product_id")
    quantity = raw.get("quantity")

    if not isinstance(product_id, int) or isinstance(product_id, bool):
        raise OrderError("product_id must be an integer")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise OrderError("quantity must be a positive integer")

    product = _get_product(product_id)

    unit_price_cents = raw.get("unit_price_cents")
    if unit_price_cents is None:
        unit_price_cents = product.price_cents
    elif not isinstance(unit_price_cents, int) or isinstance(unit_price_cents, bool) or unit_price_cents < 0:
        raise OrderError("unit_price_cents must be a non-negative integer")

    return OrderItem(
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        observations=raw.get("observations"),
    )


def create_order(
    *,
    items: Iterable[dict],
    user_id: int,
    table_id: int | None = None,
    customer_name: str | None = None,
    delivery: bool = False,
    address: str | None = None,
) -> Order:
    """
    Place a new order.

    - Snapshots item prices (product price unless unit_price_cents is given)
    - Reserves stock for every stock-managed item
    - Marks the table occupied when the order is a table order

    Raises:
        OrderError: empty or malformed items
        ProductNotFoundError / TableNotFoundError: unknown references
        InsufficientStockError: any item short on stock (nothing is written)
    """
    item_list = list(items or [])
    if not item_list:
        raise OrderError("Order must contain at least one item")
    if delivery and not address:
        raise OrderError("Delivery orders require an address")

    def _op():
        now = utcnow()
        order = Order(
            user_id=user_id,
            customer_name=customer_name,
            status=ORDER_PENDING,
            payment_status=PAYMENT_PENDING,
            delivery=bool(delivery),
            address=address,
            created_at=now,
            updated_at=now,
        )
        for raw in item_list:
            order.items.append(_build_item(raw))
        order.recalculate_total()

        table = None
        if table_id is not None:
            table = get_table(table_id, lock=True)
            order.table_id = table.id
            order.table_number = table.number

        db.session.add(order)
        db.session.flush()

        if _reserve_items_inner(order.id, order.items, user_id):
            order.stock_status = STOCK_RESERVED

        if table is not None:
            occupy_table(table, order.id, at=now)

        db.session.commit()
        logger.info("Order %s created (%d items, total %s cents)", order.id, len(order.items), order.total_cents)
        return order

    return run_with_retry(_op)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

def update_order_status(order_id: int, new_status: str, acting_user_id: int) -> Order:
    """
    Move an order to a new status and apply the side effects of that status.

    Args:
        order_id: Order to update
        new_status: pending | preparing | ready | delivered | canceled
        acting_user_id: Staff member recorded on stock movements

    Returns:
        The updated order

    Raises:
        OrderError: unknown status value
        OrderNotFoundError: order does not exist
        InvalidTransitionError: order already delivered/canceled
        InventoryError subclasses: stock side effect failed (nothing is written)
    """
    validate_status(new_status)

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise OrderNotFoundError(f"Order with ID {order_id} not found")

        current_status = order.status
        if not can_transition(current_status, new_status):
            raise InvalidTransitionError(order_id, current_status, new_status)

        now = utcnow()

        if new_status == ORDER_CANCELED and current_status != ORDER_CANCELED:
            if order.stock_status == STOCK_RESERVED:
                _release_order_inner(order, acting_user_id)

        if new_status == ORDER_READY and current_status != ORDER_READY:
            if order.stock_status == STOCK_RESERVED:
                _finalize_order_inner(order, acting_user_id)

        if new_status == ORDER_DELIVERED and current_status != ORDER_DELIVERED:
            # Orders delivered straight from pending/preparing still hold reservations
            if order.stock_status == STOCK_RESERVED:
                _finalize_order_inner(order, acting_user_id)
            order.completed_at = now
            if order.table_id is not None and order.table is not None:
                if order.table.current_order_id in (None, order.id):
                    release_table(order.table_id)

        order.status = new_status
        order.updated_at = now
        db.session.commit()

        if current_status != new_status:
            logger.info("Order %s: %s -> %s by user %s", order_id, current_status, new_status, acting_user_id)
        return order

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: int) -> Order | None:
    return db.session.query(Order).filter_by(id=order_id).first()


def get_orders_by_status(status: str | list[str], *, since=None) -> list[Order]:
    """Orders in one or several statuses, newest first."""
    statuses = [status] if isinstance(status, str) else list(status)
    for s in statuses:
        validate_status(s)

    q = Order.query.filter(Order.status.in_(statuses))
    if since is not None:
        q = q.filter(Order.created_at >= since)

    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_orders_for_checkout() -> list[Order]:
    """Delivered orders still waiting for payment, most recently completed first."""
    return Order.query.filter_by(
        status=ORDER_DELIVERED,
        payment_status=PAYMENT_PENDING,
    ).order_by(Order.completed_at.desc(), Order.id.desc()).all()
