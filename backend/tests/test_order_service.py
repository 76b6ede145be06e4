"""
Order lifecycle tests.

Verifies:
- Placement snapshots prices, reserves stock and occupies the table
- Terminal-state lock (delivered/canceled)
- Side effects per target status, applied at most once per order
- Failed side effects leave the order untouched
"""

import pytest

from comanda.extensions import db
from comanda.models import InventoryTransaction, DiningTable
from comanda.models.orders import STOCK_NONE, STOCK_RESERVED, STOCK_FINALIZED, STOCK_RELEASED
from comanda.services import order_service
from comanda.services.order_service import OrderError, OrderNotFoundError, InvalidTransitionError
from comanda.services.inventory_service import (
    InsufficientStockError,
    InsufficientReservedStockError,
    ProductNotFoundError,
)
from comanda.services.table_service import TableNotFoundError


def _place(user, *pairs, **kwargs):
    items = [{"product_id": product.id, "quantity": quantity} for product, quantity in pairs]
    return order_service.create_order(items=items, user_id=user.id, **kwargs)


def _ledger_types(order_id):
    return [
        tx.type for tx in
        InventoryTransaction.query.filter_by(order_id=order_id).order_by(InventoryTransaction.id).all()
    ]


# =============================================================================
# PLACEMENT
# =============================================================================


class TestCreateOrder:

    def test_snapshots_prices_and_total(self, admin, make_product):
        burger = make_product("Burger", price_cents=2990)
        soda = make_product("Soda", price_cents=600, stock_management=False)

        order = _place(admin, (burger, 2), (soda, 3))

        assert order.status == "pending"
        assert order.payment_status == "pending"
        assert order.total_cents == 2 * 2990 + 3 * 600
        assert [item.unit_price_cents for item in order.items] == [2990, 600]

        # Later price changes do not touch the order
        burger.price_cents = 3500
        db.session.commit()
        assert order.items[0].unit_price_cents == 2990

    def test_reserves_managed_items(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)

        order = _place(admin, (burger, 3))

        assert order.stock_status == STOCK_RESERVED
        assert (burger.stock_quantity, burger.stock_reserved) == (7, 3)
        assert _ledger_types(order.id) == ["reserved"]

    def test_unmanaged_only_order_reserves_nothing(self, admin, make_product):
        juice = make_product("Juice", stock_management=False)

        order = _place(admin, (juice, 1))

        assert order.stock_status == STOCK_NONE
        assert _ledger_types(order.id) == []

    def test_occupies_table(self, admin, make_product, make_table):
        burger = make_product()
        table = make_table(5)

        order = _place(admin, (burger, 1), table_id=table.id)

        assert order.table_number == 5
        assert table.status == "occupied"
        assert table.current_order_id == order.id
        assert table.last_order_at is not None

    def test_insufficient_stock_writes_nothing(self, admin, make_product, make_table):
        burger = make_product("Burger", stock_quantity=10)
        pie = make_product("Pie", stock_quantity=1)
        table = make_table(2)

        with pytest.raises(InsufficientStockError):
            _place(admin, (burger, 2), (pie, 2), table_id=table.id)

        assert (burger.stock_quantity, burger.stock_reserved) == (10, 0)
        assert (pie.stock_quantity, pie.stock_reserved) == (1, 0)
        assert table.status == "available"
        assert InventoryTransaction.query.count() == 0

    def test_rejects_empty_and_unknown(self, admin, make_product):
        with pytest.raises(OrderError):
            order_service.create_order(items=[], user_id=admin.id)
        with pytest.raises(ProductNotFoundError):
            order_service.create_order(items=[{"product_id": 999, "quantity": 1}], user_id=admin.id)
        with pytest.raises(TableNotFoundError):
            _place(admin, (make_product(), 1), table_id=999)

    def test_boolean_unit_price_is_rejected(self, admin, make_product):
        burger = make_product()

        with pytest.raises(OrderError):
            order_service.create_order(
                items=[{"product_id": burger.id, "quantity": 1, "unit_price_cents": True}],
                user_id=admin.id,
            )

        assert burger.stock_reserved == 0

    def test_delivery_requires_address(self, admin, make_product):
        burger = make_product()
        with pytest.raises(OrderError):
            _place(admin, (burger, 1), delivery=True)

        order = _place(admin, (burger, 1), delivery=True, address="Rua A, 12")
        assert order.delivery is True


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================


class TestTransitionRules:

    @pytest.mark.parametrize("terminal", ["delivered", "canceled"])
    @pytest.mark.parametrize("target", ["pending", "preparing", "ready"])
    def test_terminal_state_lock(self, terminal, target):
        assert order_service.can_transition(terminal, target) is False
        assert order_service.can_transition(terminal, terminal) is True

    def test_non_terminal_moves_are_free(self):
        assert order_service.can_transition("pending", "ready") is True
        assert order_service.can_transition("ready", "pending") is True
        assert order_service.can_transition("preparing", "canceled") is True

    def test_unknown_status(self):
        with pytest.raises(OrderError):
            order_service.can_transition("pending", "eaten")


class TestUpdateOrderStatus:

    def test_delivered_order_cannot_be_reopened(self, admin, make_product):
        order = _place(admin, (make_product(), 1))
        order_service.update_order_status(order.id, "delivered", admin.id)

        with pytest.raises(InvalidTransitionError):
            order_service.update_order_status(order.id, "pending", admin.id)

        assert order.status == "delivered"

    def test_same_terminal_status_is_accepted(self, admin, make_product):
        order = _place(admin, (make_product(), 1))
        order_service.update_order_status(order.id, "canceled", admin.id)

        updated = order_service.update_order_status(order.id, "canceled", admin.id)

        assert updated.status == "canceled"
        assert _ledger_types(order.id) == ["reserved", "released"]

    def test_cancel_releases_every_item(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        pie = make_product("Pie", stock_quantity=4)
        order = _place(admin, (burger, 2), (pie, 1))

        order_service.update_order_status(order.id, "canceled", admin.id)

        assert (burger.stock_quantity, burger.stock_reserved) == (10, 0)
        assert (pie.stock_quantity, pie.stock_reserved) == (4, 0)
        assert _ledger_types(order.id) == ["reserved", "reserved", "released", "released"]
        assert order.stock_status == STOCK_RELEASED

    def test_ready_finalizes_stock(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        order = _place(admin, (burger, 3))

        order_service.update_order_status(order.id, "preparing", admin.id)
        order_service.update_order_status(order.id, "ready", admin.id)

        assert (burger.stock_quantity, burger.stock_reserved) == (7, 0)
        assert _ledger_types(order.id) == ["reserved", "out"]
        assert order.stock_status == STOCK_FINALIZED

    def test_finalization_happens_once(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        order = _place(admin, (burger, 3))

        order_service.update_order_status(order.id, "ready", admin.id)
        order_service.update_order_status(order.id, "preparing", admin.id)
        order_service.update_order_status(order.id, "ready", admin.id)
        order_service.update_order_status(order.id, "delivered", admin.id)

        assert _ledger_types(order.id) == ["reserved", "out"]
        assert (burger.stock_quantity, burger.stock_reserved) == (7, 0)

    def test_cancel_after_ready_does_not_restock(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        order = _place(admin, (burger, 3))
        order_service.update_order_status(order.id, "ready", admin.id)

        order_service.update_order_status(order.id, "canceled", admin.id)

        assert (burger.stock_quantity, burger.stock_reserved) == (7, 0)
        assert _ledger_types(order.id) == ["reserved", "out"]

    def test_delivered_straight_from_pending_finalizes(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        order = _place(admin, (burger, 2))

        order_service.update_order_status(order.id, "delivered", admin.id)

        assert burger.stock_reserved == 0
        assert order.stock_status == STOCK_FINALIZED

    def test_delivered_frees_table_and_stamps_completion(self, admin, make_product, make_table):
        table = make_table(3)
        order = _place(admin, (make_product(), 1), table_id=table.id)
        assert order.completed_at is None

        order_service.update_order_status(order.id, "delivered", admin.id)

        assert order.completed_at is not None
        assert table.status == "available"
        assert table.current_order_id is None

    def test_delivered_leaves_table_taken_by_a_newer_order(self, admin, make_product, make_table):
        table = make_table(3)
        burger = make_product()
        first = _place(admin, (burger, 1), table_id=table.id)
        second = _place(admin, (burger, 1), table_id=table.id)

        order_service.update_order_status(first.id, "delivered", admin.id)

        table = db.session.get(DiningTable, table.id)
        assert table.status == "occupied"
        assert table.current_order_id == second.id

    def test_failed_side_effect_leaves_order_untouched(self, admin, make_product):
        burger = make_product("Burger", stock_quantity=10)
        order = _place(admin, (burger, 2))
        # Reserved stock drained behind the order's back
        burger.stock_reserved = 0
        burger.stock_quantity = 10
        db.session.commit()

        with pytest.raises(InsufficientReservedStockError):
            order_service.update_order_status(order.id, "canceled", admin.id)

        assert order.status == "pending"
        assert order.stock_status == STOCK_RESERVED
        assert burger.stock_quantity == 10

    def test_unknown_order_and_status(self, admin):
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(4040, "ready", admin.id)
        with pytest.raises(OrderError):
            order_service.update_order_status(4040, "eaten", admin.id)


class TestQueries:

    def test_by_status_newest_first(self, admin, make_product):
        burger = make_product(stock_management=False)
        first = _place(admin, (burger, 1))
        second = _place(admin, (burger, 1))
        third = _place(admin, (burger, 1))
        order_service.update_order_status(third.id, "ready", admin.id)

        pending = order_service.get_orders_by_status("pending")
        kitchen = order_service.get_orders_by_status(["pending", "ready"])

        assert [o.id for o in pending] == [second.id, first.id]
        assert {o.id for o in kitchen} == {first.id, second.id, third.id}

    def test_checkout_queue(self, admin, make_product):
        burger = make_product(stock_management=False)
        waiting = _place(admin, (burger, 1))
        _place(admin, (burger, 1))
        order_service.update_order_status(waiting.id, "delivered", admin.id)

        assert [o.id for o in order_service.get_orders_for_checkout()] == [waiting.id]
