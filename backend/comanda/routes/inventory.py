# Overview: Flask API routes for stock movements and stock reports.

# backend/comanda/routes/inventory.py
"""
Inventory API Routes

- POST /api/inventory/<product_id>/movements - raw ledger movement (in/out/reserved/released)
- POST /api/inventory/<product_id>/restock   - purchase received
- POST /api/inventory/<product_id>/adjust    - set stock to a counted value
- GET  /api/inventory/<product_id>/history   - movement log, newest first
- GET  /api/inventory/low-stock              - products at or below min_stock

SECURITY:
- Writes are admin-only; kitchen staff may read history and low-stock
- user_id on movements is the authenticated user, NOT a body field
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service
from ..services.inventory_service import (
    InventoryError,
    ProductNotFoundError,
    InsufficientStockError,
    InsufficientReservedStockError,
)
from ..validation import ValidationError, require_json_object, require_fields, coerce_int, coerce_datetime
from ..decorators import require_auth, require_role
from ..roles import STOCK_MANAGERS, STOCK_VIEWERS


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _movement_response(tx, product_id: int):
    if tx is None:
        return jsonify({
            "transaction": None,
            "message": f"Stock management not enabled for product {product_id}",
        }), 200
    return jsonify({"transaction": tx.to_dict()}), 201


def _error_response(e: Exception):
    if isinstance(e, ProductNotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, (InsufficientStockError, InsufficientReservedStockError)):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


@inventory_bp.post("/<int:product_id>/movements")
@require_auth
@require_role(STOCK_MANAGERS)
def stock_movement_route(product_id: int):
    """
    Apply a raw stock movement.

    Request body:
    {
        "quantity": 5,
        "type": "in",            in | out | reserved | released
        "reason": "purchase",    purchase | sale | adjustment | return | loss
        "order_id": 12,          (optional)
        "notes": "..."           (optional)
    }

    Returns:
        201: Movement recorded
        200: Product not stock-managed (nothing recorded)
        400 / 404 / 409: invalid input / unknown product / not enough stock
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "quantity", "type", "reason")

        tx = inventory_service.update_stock(
            product_id,
            coerce_int(data.get("quantity"), "quantity", minimum=1),
            data["type"],
            data["reason"],
            g.current_user.id,
            order_id=coerce_int(data.get("order_id"), "order_id", minimum=1, allow_none=True),
            notes=data.get("notes"),
        )
        return _movement_response(tx, product_id)

    except (ValidationError, InventoryError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply stock movement")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/restock")
@require_auth
@require_role(STOCK_MANAGERS)
def restock_route(product_id: int):
    """Receive purchased units: {"quantity": 24, "notes": "..."}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        tx = inventory_service.restock_product(
            product_id,
            coerce_int(data.get("quantity"), "quantity", minimum=1),
            g.current_user.id,
            notes=data.get("notes"),
        )
        return _movement_response(tx, product_id)

    except (ValidationError, InventoryError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/adjust")
@require_auth
@require_role(STOCK_MANAGERS)
def adjust_route(product_id: int):
    """Set available stock to a counted value: {"counted_quantity": 17}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        tx = inventory_service.adjust_stock(
            product_id,
            coerce_int(data.get("counted_quantity"), "counted_quantity", minimum=0),
            g.current_user.id,
            notes=data.get("notes"),
        )
        if tx is None:
            return jsonify({"transaction": None, "message": "No change"}), 200
        return jsonify({"transaction": tx.to_dict()}), 201

    except (ValidationError, InventoryError) as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:product_id>/history")
@require_auth
@require_role(STOCK_VIEWERS)
def history_route(product_id: int):
    try:
        limit = coerce_int(request.args.get("limit", 200), "limit", minimum=1)
        since = coerce_datetime(request.args.get("since"), "since")
        transactions = inventory_service.get_product_inventory_history(
            product_id, since=since, limit=min(limit, 1000)
        )
        return jsonify({"transactions": [tx.to_dict() for tx in transactions]}), 200

    except (ValidationError, InventoryError) as e:
        return _error_response(e)


@inventory_bp.get("/low-stock")
@require_auth
@require_role(STOCK_VIEWERS)
def low_stock_route():
    products = inventory_service.get_low_stock_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200
