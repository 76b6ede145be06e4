from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

SESSION_OPEN = "open"
SESSION_CLOSED = "closed"


class RegisterSession(db.Model):
    """
    Cash register session (one drawer, one period of accountability).

    LIFECYCLE:
    - open: payments are folded in, expected cash grows with cash payments
    - closed: counted cash recorded, difference calculated

    SINGLE ACTIVE REGISTER: the partial unique index allows at most one row
    with status='open'. Closed sessions are immutable.
    """
    __tablename__ = "register_sessions"
    __table_args__ = (
        db.Index(
            "uq_register_sessions_single_open",
            "status",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=SESSION_OPEN)

    # All amounts in cents
    opening_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    expected_closing_amount_cents = db.Column(db.Integer, nullable=False, default=0)  # opening + cash
    actual_closing_amount_cents = db.Column(db.Integer, nullable=True)  # counted at close
    difference_cents = db.Column(db.Integer, nullable=True)  # actual - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", foreign_keys=[user_id])
    transactions = db.relationship(
        "RegisterTransaction",
        backref="session",
        lazy=True,
        order_by="RegisterTransaction.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == SESSION_OPEN

    def to_dict(self, include_transactions: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "opening_amount_cents": self.opening_amount_cents,
            "expected_closing_amount_cents": self.expected_closing_amount_cents,
            "actual_closing_amount_cents": self.actual_closing_amount_cents,
            "difference_cents": self.difference_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "notes": self.notes,
            "version_id": self.version_id,
        }
        if include_transactions:
            data["transactions"] = [tx.to_dict() for tx in self.transactions]
        return data


class RegisterTransaction(db.Model):
    """Payment folded into a register session. Append-only, ordered by id."""
    __tablename__ = "register_transactions"
    __table_args__ = (
        db.UniqueConstraint("session_id", "payment_id", name="uq_register_txns_session_payment"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("register_sessions.id"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "payment_id": self.payment_id,
            "order_id": self.order_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "occurred_at": to_utc_z(self.occurred_at),
        }
