from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

TABLE_AVAILABLE = "available"
TABLE_OCCUPIED = "occupied"
TABLE_RESERVED = "reserved"

VALID_TABLE_STATUSES = {TABLE_AVAILABLE, TABLE_OCCUPIED, TABLE_RESERVED}


class DiningTable(db.Model):
    """
    Physical table in the dining room.

    An occupied table points at the order currently running on it; delivering
    that order frees the table again.
    """
    __tablename__ = "dining_tables"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.Integer, nullable=False, unique=True)
    seats = db.Column(db.Integer, nullable=False, default=4)
    status = db.Column(db.String(16), nullable=False, default=TABLE_AVAILABLE, index=True)

    # Weak reference: no FK so orders and tables can be written in either order
    current_order_id = db.Column(db.Integer, nullable=True)
    last_order_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "seats": self.seats,
            "status": self.status,
            "current_order_id": self.current_order_id,
            "last_order_at": to_utc_z(self.last_order_at),
        }
