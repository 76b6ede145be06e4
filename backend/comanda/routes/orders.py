# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/comanda/routes/orders.py
"""
Order API Routes

DESIGN:
- Order placement reserves stock and occupies the table in one step
- Status changes go through the lifecycle state machine only
- Acting user ids come from the authenticated request, never from the body

SECURITY:
- ORDER_PLACERS may place orders (customers included, for app orders)
- ORDER_HANDLERS may read orders and move them through the kitchen flow
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import order_service
from ..services.order_service import OrderError, OrderNotFoundError, InvalidTransitionError
from ..services.inventory_service import InventoryError, ProductNotFoundError
from ..services.table_service import TableNotFoundError
from ..validation import ValidationError, require_json_object, coerce_int, coerce_datetime, parse_order_items
from ..decorators import require_auth, require_role
from ..roles import ORDER_PLACERS, ORDER_HANDLERS


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/")
@orders_bp.post("")
@require_auth
@require_role(ORDER_PLACERS)
def create_order_route():
    """
    Place an order.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2, "observations": "no onion"}],
        "table_id": 3,             (optional)
        "customer_name": "Ana",    (optional)
        "delivery": true,          (optional)
        "address": "Rua A, 12"     (required when delivery)
    }

    Returns:
        201: Order created
        400: Invalid input
        404: Unknown product or table
        409: Not enough stock
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        items = parse_order_items(data.get("items"))
        table_id = coerce_int(data.get("table_id"), "table_id", minimum=1, allow_none=True)

        order = order_service.create_order(
            items=items,
            user_id=g.current_user.id,
            table_id=table_id,
            customer_name=data.get("customer_name"),
            delivery=bool(data.get("delivery", False)),
            address=data.get("address"),
        )
        return jsonify({"order": order.to_dict()}), 201

    except (ProductNotFoundError, TableNotFoundError) as e:
        return jsonify({"error": str(e)}), 404
    except InventoryError as e:
        # Insufficient stock
        return jsonify({"error": str(e)}), 409
    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
@orders_bp.get("")
@require_auth
@require_role(ORDER_HANDLERS)
def list_orders_route():
    """
    List orders by status, newest first.

    Query params:
        status: comma-separated statuses (default: every non-terminal status)
        since: ISO-8601 lower bound on created_at
    """
    try:
        raw_status = request.args.get("status")
        if raw_status:
            statuses = [s.strip() for s in raw_status.split(",") if s.strip()]
        else:
            statuses = ["pending", "preparing", "ready"]
        since = coerce_datetime(request.args.get("since"), "since")

        orders = order_service.get_orders_by_status(statuses, since=since)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200

    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400


@orders_bp.get("/checkout")
@require_auth
@require_role(ORDER_HANDLERS)
def checkout_queue_route():
    """Delivered orders waiting for payment."""
    orders = order_service.get_orders_for_checkout()
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_auth
@require_role(ORDER_HANDLERS)
def get_order_route(order_id: int):
    order = order_service.get_order(order_id)
    if order is None:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_role(ORDER_HANDLERS)
def update_order_status_route(order_id: int):
    """
    Move an order to a new status.

    Request body:
    {
        "status": "preparing"
    }

    Error responses:
        400: Unknown status
        404: Order not found
        409: Order already delivered/canceled, or a stock side effect failed

    The order is left untouched on any error; clients should re-fetch it.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        new_status = data.get("status")
        if not new_status:
            return jsonify({"error": "status is required"}), 400

        order = order_service.update_order_status(order_id, new_status, g.current_user.id)
        return jsonify({"order": order.to_dict()}), 200

    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InvalidTransitionError as e:
        return jsonify({"error": str(e)}), 409
    except InventoryError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500
