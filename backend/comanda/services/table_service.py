# Overview: Dining-table collaborator used by the order workflow (occupy on order, free on delivery).

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import DiningTable
from ..models.tables import TABLE_AVAILABLE, TABLE_OCCUPIED, VALID_TABLE_STATUSES
from .concurrency import lock_for_update


class TableNotFoundError(ValueError):
    """Raised when a table id does not resolve."""
    pass


def get_table(table_id: int, *, lock: bool = False) -> DiningTable:
    query = db.session.query(DiningTable).filter_by(id=table_id)
    if lock:
        query = lock_for_update(query)
    table = query.first()
    if table is None:
        raise TableNotFoundError(f"Table with ID {table_id} not found")
    return table


def list_tables(status: str | None = None) -> list[DiningTable]:
    q = DiningTable.query
    if status is not None:
        if status not in VALID_TABLE_STATUSES:
            raise ValueError(f"Invalid table status: {status}")
        q = q.filter_by(status=status)
    return q.order_by(DiningTable.number).all()


def occupy_table(table: DiningTable, order_id: int, *, at: datetime) -> DiningTable:
    """Point the table at its running order. No commit."""
    table.status = TABLE_OCCUPIED
    table.current_order_id = order_id
    table.last_order_at = at
    return table


def release_table(table_id: int) -> DiningTable | None:
    """
    Free a table after its order is delivered. No commit.

    A table that has since been removed is ignored; the order keeps its
    table_number for history.
    """
    table = db.session.query(DiningTable).filter_by(id=table_id).first()
    if table is None:
        return None
    table.status = TABLE_AVAILABLE
    table.current_order_id = None
    return table
