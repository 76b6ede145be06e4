"""
HTTP API tests.

Verifies:
- Acting user resolution (401) and role gates (403)
- Status codes for domain errors (400/404/409)
- End-to-end: place -> kitchen -> deliver -> pay -> close register
"""

import pytest

from comanda.extensions import db
from comanda.models import Category, Product


def auth_headers(user) -> dict:
    """Acting-user header for a user."""
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def waiter(make_user):
    return make_user("waiter")


@pytest.fixture
def kitchen(make_user):
    return make_user("kitchen")


@pytest.fixture
def customer(make_user):
    return make_user("customer")


def _place(client, user, product, quantity=1, **extra):
    body = {"items": [{"product_id": product.id, "quantity": quantity}]}
    body.update(extra)
    return client.post("/api/orders", json=body, headers=auth_headers(user))


# =============================================================================
# AUTHENTICATION / AUTHORIZATION
# =============================================================================


class TestAccessControl:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/inventory/low-stock"),
            ("POST", "/api/payments"),
            ("GET", "/api/registers/active"),
            ("GET", "/api/tables"),
        ],
    )
    def test_requires_user_header(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401

    def test_unknown_or_inactive_user(self, client, make_user):
        inactive = make_user("admin", is_active=False)

        assert client.get("/api/orders", headers={"X-User-Id": "99999"}).status_code == 401
        assert client.get("/api/orders", headers=auth_headers(inactive)).status_code == 401

    def test_customer_cannot_move_orders(self, client, customer, make_product):
        order_id = _place(client, customer, make_product()).get_json()["order"]["id"]

        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "ready"}, headers=auth_headers(customer))

        assert resp.status_code == 403

    def test_waiter_cannot_take_payments_or_open_register(self, client, waiter):
        assert client.post("/api/payments", json={}, headers=auth_headers(waiter)).status_code == 403
        resp = client.post("/api/registers/open", json={"opening_amount_cents": 0}, headers=auth_headers(waiter))
        assert resp.status_code == 403

    def test_kitchen_reads_but_cannot_restock(self, client, kitchen, make_product):
        product = make_product()

        assert client.get("/api/inventory/low-stock", headers=auth_headers(kitchen)).status_code == 200
        resp = client.post(f"/api/inventory/{product.id}/restock", json={"quantity": 5}, headers=auth_headers(kitchen))
        assert resp.status_code == 403


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderRoutes:

    def test_place_order(self, client, waiter, make_product, make_table):
        product = make_product(price_cents=2500, stock_quantity=10)
        table = make_table(4)

        resp = _place(client, waiter, product, 2, table_id=table.id, customer_name="Ana")

        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["total_cents"] == 5000
        assert order["table_number"] == 4
        assert order["stock_status"] == "reserved"

        tables = client.get("/api/tables?status=occupied", headers=auth_headers(waiter)).get_json()["tables"]
        assert [t["current_order_id"] for t in tables] == [order["id"]]

    def test_place_order_errors(self, client, waiter, make_product):
        product = make_product(stock_quantity=1)

        assert client.post("/api/orders", json={"items": []}, headers=auth_headers(waiter)).status_code == 400
        assert _place(client, waiter, product, 0).status_code == 400
        assert _place(client, waiter, product, 1, table_id=999).status_code == 404
        assert _place(client, waiter, product, 5).status_code == 409

        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_quantity == 1

    def test_list_defaults_to_open_orders(self, client, waiter, make_product):
        product = make_product(stock_management=False)
        open_id = _place(client, waiter, product).get_json()["order"]["id"]
        done_id = _place(client, waiter, product).get_json()["order"]["id"]
        client.post(f"/api/orders/{done_id}/status", json={"status": "delivered"}, headers=auth_headers(waiter))

        listed = client.get("/api/orders", headers=auth_headers(waiter)).get_json()["orders"]
        delivered = client.get("/api/orders?status=delivered", headers=auth_headers(waiter)).get_json()["orders"]

        assert [o["id"] for o in listed] == [open_id]
        assert [o["id"] for o in delivered] == [done_id]
        assert client.get("/api/orders?status=eaten", headers=auth_headers(waiter)).status_code == 400

    def test_status_errors(self, client, kitchen, waiter, make_product):
        order_id = _place(client, waiter, make_product()).get_json()["order"]["id"]
        headers = auth_headers(kitchen)

        assert client.post(f"/api/orders/{order_id}/status", json={}, headers=headers).status_code == 400
        assert client.post(f"/api/orders/{order_id}/status", json={"status": "eaten"}, headers=headers).status_code == 400
        assert client.post("/api/orders/9999/status", json={"status": "ready"}, headers=headers).status_code == 404

        assert client.post(f"/api/orders/{order_id}/status", json={"status": "canceled"}, headers=headers).status_code == 200
        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "pending"}, headers=headers)
        assert resp.status_code == 409

    def test_get_order(self, client, waiter, make_product):
        order_id = _place(client, waiter, make_product()).get_json()["order"]["id"]

        assert client.get(f"/api/orders/{order_id}", headers=auth_headers(waiter)).status_code == 200
        assert client.get("/api/orders/9999", headers=auth_headers(waiter)).status_code == 404


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventoryRoutes:

    def test_movement_and_history(self, client, admin, make_product):
        product = make_product(stock_quantity=3, min_stock=5)
        headers = auth_headers(admin)

        resp = client.post(
            f"/api/inventory/{product.id}/movements",
            json={"quantity": 4, "type": "in", "reason": "purchase"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["transaction"]["new_quantity"] == 7

        history = client.get(f"/api/inventory/{product.id}/history", headers=headers).get_json()["transactions"]
        assert len(history) == 1
        assert history[0]["user_id"] == admin.id

    def test_movement_errors(self, client, admin, make_product):
        product = make_product(stock_quantity=1)
        headers = auth_headers(admin)
        url = f"/api/inventory/{product.id}/movements"

        assert client.post(url, json={"quantity": 2, "type": "out", "reason": "loss"}, headers=headers).status_code == 409
        assert client.post(url, json={"quantity": 1, "type": "nope", "reason": "loss"}, headers=headers).status_code == 400
        assert client.post(url, json={"type": "out", "reason": "loss"}, headers=headers).status_code == 400
        resp = client.post("/api/inventory/9999/movements", json={"quantity": 1, "type": "in", "reason": "purchase"},
                           headers=headers)
        assert resp.status_code == 404

    def test_unmanaged_product_returns_200(self, client, admin, make_product):
        product = make_product(stock_management=False)

        resp = client.post(f"/api/inventory/{product.id}/restock", json={"quantity": 5}, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.get_json()["transaction"] is None

    def test_adjust_and_low_stock(self, client, admin, make_product):
        product = make_product(stock_quantity=10, min_stock=3)
        headers = auth_headers(admin)

        resp = client.post(f"/api/inventory/{product.id}/adjust", json={"counted_quantity": 2}, headers=headers)
        assert resp.status_code == 201

        low = client.get("/api/inventory/low-stock", headers=headers).get_json()["products"]
        assert [p["id"] for p in low] == [product.id]


# =============================================================================
# PAYMENTS AND REGISTER
# =============================================================================


class TestCheckoutFlow:

    def test_full_service(self, client, waiter, kitchen, cashier, make_product, make_table):
        burger = make_product("Burger", price_cents=2500, stock_quantity=10)
        table = make_table(7)

        resp = client.post("/api/registers/open", json={"opening_amount_cents": 10000}, headers=auth_headers(cashier))
        assert resp.status_code == 201
        session_id = resp.get_json()["session"]["id"]

        order_id = _place(client, waiter, burger, 2, table_id=table.id).get_json()["order"]["id"]
        for status in ("preparing", "ready"):
            resp = client.post(f"/api/orders/{order_id}/status", json={"status": status}, headers=auth_headers(kitchen))
            assert resp.status_code == 200
        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=auth_headers(waiter))
        assert resp.get_json()["order"]["completed_at"] is not None

        checkout = client.get("/api/orders/checkout", headers=auth_headers(cashier)).get_json()["orders"]
        assert [o["id"] for o in checkout] == [order_id]

        resp = client.post(
            "/api/payments",
            json={"order_id": order_id, "method": "cash", "amount_cents": 5000, "amount_received_cents": 6000},
            headers=auth_headers(cashier),
        )
        assert resp.status_code == 201
        payment = resp.get_json()["payment"]
        assert payment["change_cents"] == 1000
        assert payment["staff_id"] == cashier.id

        paid = client.get(f"/api/orders/{order_id}", headers=auth_headers(cashier)).get_json()["order"]
        assert paid["payment_status"] == "paid"

        summary = client.get(f"/api/registers/{session_id}/summary", headers=auth_headers(cashier)).get_json()
        assert summary["expected_closing_amount_cents"] == 15000

        resp = client.post(
            f"/api/registers/{session_id}/close",
            json={"actual_closing_amount_cents": 14500},
            headers=auth_headers(cashier),
        )
        assert resp.status_code == 200
        assert resp.get_json()["session"]["difference_cents"] == -500

        resp = client.post(
            f"/api/registers/{session_id}/close",
            json={"actual_closing_amount_cents": 15000},
            headers=auth_headers(cashier),
        )
        assert resp.status_code == 409

        tables = client.get("/api/tables", headers=auth_headers(waiter)).get_json()["tables"]
        assert tables[0]["status"] == "available"

        db.session.expire_all()
        product = db.session.get(Product, burger.id)
        assert (product.stock_quantity, product.stock_reserved) == (8, 0)

    def test_payment_errors(self, client, cashier):
        headers = auth_headers(cashier)

        resp = client.post("/api/payments", json={"order_id": 9999, "method": "cash", "amount_cents": 10}, headers=headers)
        assert resp.status_code == 404
        resp = client.post("/api/payments", json={"order_id": 1, "method": "cash"}, headers=headers)
        assert resp.status_code == 400
        assert client.get("/api/payments/order/9999", headers=headers).status_code == 404

    def test_register_routes(self, client, cashier):
        headers = auth_headers(cashier)

        assert client.get("/api/registers/active", headers=headers).get_json()["session"] is None
        assert client.post("/api/registers/open", json={"opening_amount_cents": -5}, headers=headers).status_code == 400

        assert client.post("/api/registers/open", json={"opening_amount_cents": 0}, headers=headers).status_code == 201
        assert client.post("/api/registers/open", json={"opening_amount_cents": 0}, headers=headers).status_code == 409

        sessions = client.get("/api/registers?status=open", headers=headers).get_json()["sessions"]
        assert len(sessions) == 1
        assert client.post("/api/registers/9999/close", json={"actual_closing_amount_cents": 0},
                           headers=headers).status_code == 404
        assert client.get("/api/registers/9999/summary", headers=headers).status_code == 404


class TestCatalogRoutes:

    def test_list_categories(self, client, customer, db_session):
        db_session.add_all([Category(name="Drinks", sort_order=2), Category(name="Mains", sort_order=1)])
        db_session.commit()

        resp = client.get("/api/categories", headers=auth_headers(customer))

        assert resp.status_code == 200
        assert [c["name"] for c in resp.get_json()["categories"]] == ["Mains", "Drinks"]

    def test_requires_user_header(self, client, db_session):
        assert client.get("/api/categories").status_code == 401


class TestSystemRoutes:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "database": "ok"}

    def test_cors_allowed_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
