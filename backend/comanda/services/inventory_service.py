# Overview: Stock ledger for menu products; counters on the product row plus an append-only movement log.

# backend/comanda/services/inventory_service.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from ..extensions import db
from ..models import Product, InventoryTransaction, Order
from ..models.inventory import (
    TX_IN,
    TX_OUT,
    TX_RESERVED,
    TX_RELEASED,
    VALID_TRANSACTION_TYPES,
    VALID_REASONS,
    REASON_PURCHASE,
    REASON_SALE,
    REASON_ADJUSTMENT,
    REASON_RETURN,
    REASON_LOSS,
)
from ..models.orders import STOCK_RESERVED, STOCK_FINALIZED, STOCK_RELEASED
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
"""
Inventory Ledger Invariants (authoritative)

Counters:
- stock_quantity is what new orders can take; stock_reserved is what open
  orders are holding. Both are >= 0 at all times (also CHECK-constrained).
- Reservation moves units from stock_quantity to stock_reserved.
- Release moves them back. Finalization only drops stock_reserved, because
  stock_quantity was already decremented when the units were reserved.

Opt-in:
- Products with stock_management=False are skipped silently. That is a
  successful no-op, not an error.

Audit:
- Every successful counter change appends exactly one InventoryTransaction
  in the same DB transaction. Failed movements write nothing.

Atomicity:
- Multi-item movements (reserve/release/finalize for an order) run in one DB
  transaction: one failing item rolls back every item.
"""

logger = logging.getLogger(__name__)


class InventoryError(ValueError):
    """Raised for invalid stock movements."""
    pass


class ProductNotFoundError(InventoryError):
    """Raised when a product id does not resolve."""
    pass


class InsufficientStockError(InventoryError):
    """Raised when available stock cannot cover the movement."""
    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough stock for product {product_id}: requested {requested}, available {available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InsufficientReservedStockError(InventoryError):
    """Raised when reserved stock cannot cover a release."""
    def __init__(self, product_id: int, requested: int, reserved: int):
        super().__init__(
            f"Not enough reserved stock for product {product_id}: requested {requested}, reserved {reserved}"
        )
        self.product_id = product_id
        self.requested = requested
        self.reserved = reserved


def _get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFoundError(f"Product with ID {product_id} not found")
    return product


def _get_order(order_id: int, *, lock: bool = False) -> Order:
    # Local import: order_service depends on this module
    from .order_service import OrderNotFoundError

    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise OrderNotFoundError(f"Order with ID {order_id} not found")
    return order


def _validate_movement(quantity, tx_type: str, reason: str) -> None:
    if tx_type not in VALID_TRANSACTION_TYPES:
        raise InventoryError(f"Invalid movement type: {tx_type}. Must be one of {VALID_TRANSACTION_TYPES}")
    if reason not in VALID_REASONS:
        raise InventoryError(f"Invalid reason: {reason}. Must be one of {VALID_REASONS}")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InventoryError("quantity must be a positive integer")


def _item_pairs(items: Iterable) -> list[tuple[int, int]]:
    """Accept OrderItem rows or {"product_id", "quantity"} mappings."""
    pairs = []
    for item in items:
        if isinstance(item, dict):
            pairs.append((item["product_id"], item["quantity"]))
        else:
            pairs.append((item.product_id, item.quantity))
    return pairs


# =============================================================================
# SINGLE-PRODUCT MOVEMENTS
# =============================================================================

def _apply_stock_change(
    *,
    product_id: int,
    quantity: int,
    tx_type: str,
    reason: str,
    user_id: int,
    order_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction | None:
    """Core movement logic without retry or commit. Callers own the transaction."""
    _validate_movement(quantity, tx_type, reason)

    product = _get_product(product_id, lock=True)

    if not product.stock_management:
        logger.debug("Stock management not enabled for product %s, skipping %s", product_id, tx_type)
        return None

    previous_quantity = product.stock_quantity or 0
    new_quantity = previous_quantity
    new_reserved = product.stock_reserved or 0

    if tx_type == TX_IN:
        new_quantity += quantity
    elif tx_type == TX_OUT:
        if previous_quantity < quantity:
            raise InsufficientStockError(product_id, quantity, previous_quantity)
        new_quantity -= quantity
    elif tx_type == TX_RESERVED:
        if previous_quantity < quantity:
            raise InsufficientStockError(product_id, quantity, previous_quantity)
        new_quantity -= quantity
        new_reserved += quantity
    elif tx_type == TX_RELEASED:
        if new_reserved < quantity:
            raise InsufficientReservedStockError(product_id, quantity, new_reserved)
        new_reserved -= quantity
        new_quantity += quantity

    product.stock_quantity = new_quantity
    product.stock_reserved = new_reserved
    product.updated_at = utcnow()

    tx = InventoryTransaction(
        product_id=product_id,
        type=tx_type,
        quantity=quantity,
        reason=reason,
        order_id=order_id,
        notes=notes,
        user_id=user_id,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        created_at=utcnow(),
    )
    db.session.add(tx)
    db.session.flush()

    logger.info(
        "Stock %s for product %s: qty %s -> %s, reserved %s (order=%s, reason=%s)",
        tx_type, product_id, previous_quantity, new_quantity, new_reserved, order_id, reason,
    )
    return tx


def update_stock(
    product_id: int,
    quantity: int,
    tx_type: str,
    reason: str,
    user_id: int,
    order_id: int | None = None,
    notes: str | None = None,
) -> InventoryTransaction | None:
    """
    Apply one stock movement and record it.

    Movement types:
    - in:       stock_quantity += quantity
    - out:      stock_quantity -= quantity (needs enough stock)
    - reserved: stock_quantity -> stock_reserved (needs enough stock)
    - released: stock_reserved -> stock_quantity (needs enough reserved)

    Returns:
        The appended InventoryTransaction, or None when the product does not
        use stock management (successful no-op).

    Raises:
        ProductNotFoundError, InsufficientStockError,
        InsufficientReservedStockError, InventoryError (bad input)
    """
    def _op():
        tx = _apply_stock_change(
            product_id=product_id,
            quantity=quantity,
            tx_type=tx_type,
            reason=reason,
            user_id=user_id,
            order_id=order_id,
            notes=notes,
        )
        db.session.commit()
        return tx

    return run_with_retry(_op)


def restock_product(product_id: int, quantity: int, user_id: int, notes: str | None = None) -> InventoryTransaction | None:
    """Receive purchased units into available stock."""
    return update_stock(product_id, quantity, TX_IN, REASON_PURCHASE, user_id, notes=notes)


def record_loss(product_id: int, quantity: int, user_id: int, notes: str | None = None) -> InventoryTransaction | None:
    """Write off spoiled/broken units from available stock."""
    return update_stock(product_id, quantity, TX_OUT, REASON_LOSS, user_id, notes=notes)


def adjust_stock(product_id: int, counted_quantity: int, user_id: int, notes: str | None = None) -> InventoryTransaction | None:
    """
    Set available stock to a physically counted value.

    The difference is booked as an in/out movement with reason "adjustment".
    Returns None when nothing changes or the product is not stock-managed.
    """
    if not isinstance(counted_quantity, int) or isinstance(counted_quantity, bool) or counted_quantity < 0:
        raise InventoryError("counted quantity must be a non-negative integer")

    def _op():
        product = _get_product(product_id, lock=True)
        if not product.stock_management:
            return None

        delta = counted_quantity - (product.stock_quantity or 0)
        if delta == 0:
            return None

        tx = _apply_stock_change(
            product_id=product_id,
            quantity=abs(delta),
            tx_type=TX_IN if delta > 0 else TX_OUT,
            reason=REASON_ADJUSTMENT,
            user_id=user_id,
            notes=notes or f"Stock count set to {counted_quantity}",
        )
        db.session.commit()
        return tx

    return run_with_retry(_op)


# =============================================================================
# ORDER WORKFLOWS
# =============================================================================

def _reserve_items_inner(order_id: int, items: Iterable, user_id: int) -> list[InventoryTransaction]:
    transactions = []
    for product_id, quantity in _item_pairs(items):
        tx = _apply_stock_change(
            product_id=product_id,
            quantity=quantity,
            tx_type=TX_RESERVED,
            reason=REASON_SALE,
            user_id=user_id,
            order_id=order_id,
            notes=f"Reserved for order {order_id}",
        )
        if tx is not None:
            transactions.append(tx)
    return transactions


def _release_order_inner(order: Order, user_id: int) -> list[InventoryTransaction]:
    transactions = []
    for product_id, quantity in _item_pairs(order.items):
        tx = _apply_stock_change(
            product_id=product_id,
            quantity=quantity,
            tx_type=TX_RELEASED,
            reason=REASON_RETURN,
            user_id=user_id,
            order_id=order.id,
            notes=f"Released from canceled order {order.id}",
        )
        if tx is not None:
            transactions.append(tx)
    order.stock_status = STOCK_RELEASED
    return transactions


def _finalize_order_inner(order: Order, user_id: int) -> list[InventoryTransaction]:
    """
    Turn the order's reservations into a completed sale.

    Only stock_reserved drops (clamped at 0). The transaction rows record the
    reserved counter before/after, since stock_quantity does not move here.
    """
    transactions = []
    for product_id, quantity in _item_pairs(order.items):
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None or not product.stock_management:
            continue

        previous_reserved = product.stock_reserved or 0
        new_reserved = max(0, previous_reserved - quantity)

        product.stock_reserved = new_reserved
        product.updated_at = utcnow()

        tx = InventoryTransaction(
            product_id=product_id,
            type=TX_OUT,
            quantity=quantity,
            reason=REASON_SALE,
            order_id=order.id,
            notes=f"Final stock reduction for order {order.id}",
            user_id=user_id,
            previous_quantity=previous_reserved,
            new_quantity=new_reserved,
            created_at=utcnow(),
        )
        db.session.add(tx)
        transactions.append(tx)

    db.session.flush()
    order.stock_status = STOCK_FINALIZED
    logger.info("Finalized stock for order %s (%d movements)", order.id, len(transactions))
    return transactions


def reserve_stock_for_order(order_id: int, items: Iterable, user_id: int) -> list[InventoryTransaction]:
    """
    Reserve stock for every item of an order.

    All-or-nothing: if any item lacks stock, no item stays reserved.
    """
    item_list = list(items)

    def _op():
        transactions = _reserve_items_inner(order_id, item_list, user_id)
        order = db.session.query(Order).filter_by(id=order_id).first()
        if order is not None and transactions:
            order.stock_status = STOCK_RESERVED
        db.session.commit()
        return transactions

    return run_with_retry(_op)


def release_reserved_stock(order_id: int, user_id: int) -> list[InventoryTransaction]:
    """
    Return every reserved item of the order to available stock.

    No-op unless the order still holds its reservations (stock_status
    "reserved"), so finalized or already released orders never give back
    units reserved by other orders.
    """
    def _op():
        order = _get_order(order_id, lock=True)
        if order.stock_status != STOCK_RESERVED:
            logger.debug("Order %s stock is %s, nothing to release", order_id, order.stock_status)
            db.session.commit()
            return []
        transactions = _release_order_inner(order, user_id)
        db.session.commit()
        return transactions

    return run_with_retry(_op)


def finalize_stock_reduction(order_id: int, user_id: int) -> list[InventoryTransaction]:
    """Clear the order's reservations as a completed sale. No-op unless still reserved."""
    def _op():
        order = _get_order(order_id, lock=True)
        if order.stock_status != STOCK_RESERVED:
            logger.debug("Order %s stock is %s, nothing to finalize", order_id, order.stock_status)
            db.session.commit()
            return []
        transactions = _finalize_order_inner(order, user_id)
        db.session.commit()
        return transactions

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_product_inventory_history(
    product_id: int,
    *,
    since: datetime | None = None,
    limit: int = 200,
) -> list[InventoryTransaction]:
    """Movements for one product, newest first."""
    _get_product(product_id)

    q = InventoryTransaction.query.filter_by(product_id=product_id)
    if since is not None:
        q = q.filter(InventoryTransaction.created_at >= since)

    return q.order_by(
        InventoryTransaction.created_at.desc(),
        InventoryTransaction.id.desc(),
    ).limit(limit).all()


def get_low_stock_products() -> list[Product]:
    """Stock-managed products at or below their minimum stock."""
    return Product.query.filter(
        Product.stock_management.is_(True),
        Product.min_stock.isnot(None),
        Product.stock_quantity <= Product.min_stock,
    ).order_by(Product.name).all()
