"""
Cash Register Session Service

WHY: Cash accountability. A session brackets one period of drawer activity:
it opens with a float, accumulates the payments taken while open, and closes
with a physical count compared against the expected amount.

DESIGN PRINCIPLES:
- One open session at a time (checked here, guaranteed by a partial unique index)
- expected = opening float + cash payments; card/pix/app never touch the drawer
- difference (actual - expected) is only computed at close
- Sessions are immutable once closed
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import RegisterSession, RegisterTransaction, Payment
from ..models.registers import SESSION_OPEN, SESSION_CLOSED
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

CASH_METHOD = "cash"


class RegisterSessionError(Exception):
    """Raised for register session operation errors."""
    pass


class RegisterSessionNotFoundError(RegisterSessionError):
    """Raised when a session id does not resolve."""
    pass


def _require_amount(value, field: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise RegisterSessionError(f"{field} must be a non-negative integer (cents)")
    return value


# =============================================================================
# OPEN / CLOSE
# =============================================================================

def open_register_session(user_id: int, opening_amount_cents: int, notes: str = "") -> RegisterSession:
    """
    Open the register with a starting float.

    Args:
        user_id: Staff member opening the drawer
        opening_amount_cents: Cash placed in the drawer
        notes: Optional opening notes

    Raises:
        RegisterSessionError: a session is already open, or bad amount
    """
    _require_amount(opening_amount_cents, "opening_amount_cents")

    def _op():
        existing = get_active_register_session()
        if existing is not None:
            raise RegisterSessionError(f"Register already has an open session (session {existing.id})")

        now = utcnow()
        session = RegisterSession(
            user_id=user_id,
            status=SESSION_OPEN,
            opening_amount_cents=opening_amount_cents,
            expected_closing_amount_cents=opening_amount_cents,  # nothing taken yet
            opened_at=now,
            updated_at=now,
            notes=notes or None,
        )
        db.session.add(session)
        try:
            db.session.commit()
        except IntegrityError as exc:
            # Lost the race against another opener
            raise RegisterSessionError("Register already has an open session") from exc

        logger.info("Register session %s opened by user %s with %s cents", session.id, user_id, opening_amount_cents)
        return session

    return run_with_retry(_op)


def close_register_session(session_id: int, actual_closing_amount_cents: int, notes: str = "") -> RegisterSession:
    """
    Close a session and reconcile the drawer.

    IMMUTABLE: once closed the session cannot be reopened, closed again or
    receive further payments.

    Returns:
        Closed session with difference_cents = actual - expected
    """
    _require_amount(actual_closing_amount_cents, "actual_closing_amount_cents")

    def _op():
        session = lock_for_update(db.session.query(RegisterSession).filter_by(id=session_id)).first()
        if session is None:
            raise RegisterSessionNotFoundError(f"Register session with ID {session_id} not found")
        if session.status != SESSION_OPEN:
            raise RegisterSessionError(f"Register session {session_id} is already closed")

        now = utcnow()
        expected = session.expected_closing_amount_cents or 0

        session.status = SESSION_CLOSED
        session.actual_closing_amount_cents = actual_closing_amount_cents
        session.difference_cents = actual_closing_amount_cents - expected
        session.closed_at = now
        session.updated_at = now
        if notes:
            session.notes = f"{session.notes}\n{notes}" if session.notes else notes

        db.session.commit()
        logger.info(
            "Register session %s closed: expected %s, counted %s, difference %s",
            session_id, expected, actual_closing_amount_cents, session.difference_cents,
        )
        return session

    return run_with_retry(_op)


# =============================================================================
# PAYMENT FOLDING
# =============================================================================

def fold_into_active_session(payment: Payment) -> RegisterTransaction | None:
    """
    Record a payment against the open session, if any. No commit.

    Without an open session this is a no-op: the payment stands on its own
    and simply shows up in no session summary.
    """
    session = lock_for_update(
        db.session.query(RegisterSession).filter_by(status=SESSION_OPEN).order_by(RegisterSession.opened_at)
    ).first()
    if session is None:
        logger.debug("No active register session; payment %s not folded", payment.id)
        return None

    tx = RegisterTransaction(
        session_id=session.id,
        payment_id=payment.id,
        order_id=payment.order_id,
        method=payment.method,
        amount_cents=payment.amount_cents,
        occurred_at=utcnow(),
    )
    db.session.add(tx)

    if payment.method == CASH_METHOD:
        session.expected_closing_amount_cents = (session.expected_closing_amount_cents or 0) + payment.amount_cents
    session.updated_at = utcnow()

    db.session.flush()
    return tx


# =============================================================================
# QUERIES
# =============================================================================

def get_active_register_session() -> RegisterSession | None:
    """The open session, or None."""
    return db.session.query(RegisterSession).filter_by(
        status=SESSION_OPEN
    ).order_by(RegisterSession.opened_at).first()


def get_register_session(session_id: int) -> RegisterSession:
    session = db.session.query(RegisterSession).filter_by(id=session_id).first()
    if session is None:
        raise RegisterSessionNotFoundError(f"Register session with ID {session_id} not found")
    return session


def list_register_sessions(status: str | None = None, limit: int = 50) -> list[RegisterSession]:
    q = RegisterSession.query
    if status is not None:
        if status not in (SESSION_OPEN, SESSION_CLOSED):
            raise RegisterSessionError(f"Invalid session status: {status}")
        q = q.filter_by(status=status)
    return q.order_by(RegisterSession.opened_at.desc(), RegisterSession.id.desc()).limit(limit).all()


def get_session_summary(session_id: int) -> dict:
    """
    Session totals for the close-out screen.

    Returns:
        - session details (without the transaction list)
        - totals per payment method and overall
        - cash total and the drawer reconciliation figures
    """
    session = get_register_session(session_id)

    totals_by_method: dict[str, int] = defaultdict(int)
    for tx in session.transactions:
        totals_by_method[tx.method] += tx.amount_cents

    return {
        "session": session.to_dict(include_transactions=False),
        "transaction_count": len(session.transactions),
        "totals_by_method": dict(totals_by_method),
        "total_cents": sum(totals_by_method.values()),
        "cash_total_cents": totals_by_method.get(CASH_METHOD, 0),
        "expected_closing_amount_cents": session.expected_closing_amount_cents,
        "actual_closing_amount_cents": session.actual_closing_amount_cents,
        "difference_cents": session.difference_cents,
        "is_closed": session.status == SESSION_CLOSED,
    }
