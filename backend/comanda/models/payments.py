from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Payment(db.Model):
    """
    Settlement of one order.

    Full payment only: amount_cents is expected to match the order total at
    the time of payment. amount_received_cents/change_cents only matter for
    cash.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True)  # customer, when known
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    method = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    amount_received_cents = db.Column(db.Integer, nullable=True)
    change_cents = db.Column(db.Integer, nullable=True)

    # Breakdown of amount_cents, when the till records it
    tip_cents = db.Column(db.Integer, nullable=True)
    taxes_cents = db.Column(db.Integer, nullable=True)
    service_charge_cents = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    order = db.relationship("Order", backref=db.backref("payments", lazy=True))
    staff = db.relationship("User", foreign_keys=[staff_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "staff_id": self.staff_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "amount_received_cents": self.amount_received_cents,
            "change_cents": self.change_cents,
            "tip_cents": self.tip_cents,
            "taxes_cents": self.taxes_cents,
            "service_charge_cents": self.service_charge_cents,
            "status": self.status,
            "reference": self.reference,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
