# Overview: Order settlement; records the payment, marks the order paid and feeds the open register session.

"""
Payment Processing Service

WHY: Close the loop between a delivered order and the cash drawer.

DESIGN PRINCIPLES:
- One payment settles one order in full (no split or partial payments)
- Amounts are trusted: the checkout flow checks them against the order total
- Payment row, order payment fields and register fold commit together
- Cash change is derived from amount received when not supplied
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Order, Payment
from ..models.orders import PAYMENT_PAID
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .order_service import OrderNotFoundError
from .register_service import fold_into_active_session

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# METHODS AND STATUSES (CONSTANTS)
# =============================================================================

METHOD_CASH = "cash"
METHOD_CREDIT = "credit"
METHOD_DEBIT = "debit"
METHOD_PIX = "pix"
METHOD_APP = "app"

VALID_METHODS = [METHOD_CASH, METHOD_CREDIT, METHOD_DEBIT, METHOD_PIX, METHOD_APP]

STATUS_COMPLETED = "completed"
STATUS_REFUNDED = "refunded"
STATUS_CANCELED = "canceled"
STATUS_FAILED = "failed"

VALID_PAYMENT_STATUSES = [STATUS_COMPLETED, STATUS_REFUNDED, STATUS_CANCELED, STATUS_FAILED]

def _optional_cents(value, field: str) -> int | None:
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        raise PaymentError(f"{field} must be an integer (cents)")
    return value


def process_payment(
    *,
    order_id: int,
    staff_id: int,
    method: str,
    amount_cents: int,
    amount_received_cents: int | None = None,
    change_cents: int | None = None,
    status: str = STATUS_COMPLETED,
    tip_cents: int | None = None,
    taxes_cents: int | None = None,
    service_charge_cents: int | None = None,
    user_id: int | None = None,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record a payment for an order.

    Args:
        order_id: Order being settled
        staff_id: Staff member taking the payment
        method: cash, credit, debit, pix, app
        amount_cents: Amount charged (the order total)
        amount_received_cents: Cash handed over (cash only)
        change_cents: Change given back (derived for cash when omitted)
        status: completed (default), refunded, canceled, failed
        tip_cents, taxes_cents, service_charge_cents: Breakdown of amount_cents
            (informational, optional)

    The order is marked paid and the payment is folded into the open
    register session whatever its status.

    Returns:
        Payment record

    Raises:
        PaymentError: invalid method/status/amount
        OrderNotFoundError: order does not exist
    """
    if method not in VALID_METHODS:
        raise PaymentError(f"Invalid payment method: {method}. Must be one of {VALID_METHODS}")
    if status not in VALID_PAYMENT_STATUSES:
        raise PaymentError(f"Invalid payment status: {status}. Must be one of {VALID_PAYMENT_STATUSES}")
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents < 0:
        raise PaymentError("amount_cents must be a non-negative integer")
    amount_received_cents = _optional_cents(amount_received_cents, "amount_received_cents")
    change_cents = _optional_cents(change_cents, "change_cents")
    tip_cents = _optional_cents(tip_cents, "tip_cents")
    taxes_cents = _optional_cents(taxes_cents, "taxes_cents")
    service_charge_cents = _optional_cents(service_charge_cents, "service_charge_cents")

    if method != METHOD_CASH:
        amount_received_cents = None
        change_cents = None
    elif amount_received_cents is not None and change_cents is None:
        change_cents = amount_received_cents - amount_cents

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise OrderNotFoundError(f"Order with ID {order_id} not found")

        now = utcnow()
        payment = Payment(
            order_id=order_id,
            user_id=user_id,
            staff_id=staff_id,
            method=method,
            amount_cents=amount_cents,
            amount_received_cents=amount_received_cents,
            change_cents=change_cents,
            status=status,
            tip_cents=tip_cents,
            taxes_cents=taxes_cents,
            service_charge_cents=service_charge_cents,
            reference=reference,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        db.session.add(payment)
        db.session.flush()  # Get payment ID

        order.payment_status = PAYMENT_PAID
        order.payment_method = method
        order.payment_id = payment.id
        order.updated_at = now

        fold_into_active_session(payment)

        db.session.commit()
        logger.info("Payment %s recorded for order %s: %s %s cents", payment.id, order_id, method, amount_cents)
        return payment

    return run_with_retry(_op)


def get_order_payments(order_id: int) -> list[Payment]:
    """All payments recorded for an order, oldest first."""
    return db.session.query(Payment).filter_by(
        order_id=order_id
    ).order_by(Payment.created_at, Payment.id).all()
