# Overview: Flask API routes for payments; parses input and returns JSON responses.

# backend/comanda/routes/payments.py
"""
Payment API Routes

DESIGN:
- One payment settles one delivered order
- The payment is folded into the open register session automatically
- staff_id is the authenticated user

SECURITY:
- CASH_HANDLERS (admin, cashier) only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import payment_service, order_service
from ..services.payment_service import PaymentError
from ..services.order_service import OrderNotFoundError
from ..validation import ValidationError, require_json_object, require_fields, coerce_int
from ..decorators import require_auth, require_role
from ..roles import CASH_HANDLERS


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.post("/")
@payments_bp.post("")
@require_auth
@require_role(CASH_HANDLERS)
def process_payment_route():
    """
    Record a payment for an order.

    Request body:
    {
        "order_id": 42,
        "method": "cash",                 cash | credit | debit | pix | app
        "amount_cents": 5890,
        "amount_received_cents": 6000,    (optional, cash)
        "change_cents": 110,              (optional, derived for cash)
        "tip_cents": 500,                 (optional, also taxes_cents, service_charge_cents)
        "reference": "NSU-1234",          (optional)
        "notes": "..."                    (optional)
    }

    Returns:
        201: Payment recorded
        400: Invalid input
        404: Order not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "order_id", "method", "amount_cents")

        payment = payment_service.process_payment(
            order_id=coerce_int(data.get("order_id"), "order_id", minimum=1),
            staff_id=g.current_user.id,
            method=data["method"],
            amount_cents=coerce_int(data.get("amount_cents"), "amount_cents", minimum=0),
            amount_received_cents=coerce_int(
                data.get("amount_received_cents"), "amount_received_cents", minimum=0, allow_none=True
            ),
            change_cents=coerce_int(data.get("change_cents"), "change_cents", allow_none=True),
            status=data.get("status", payment_service.STATUS_COMPLETED),
            tip_cents=coerce_int(data.get("tip_cents"), "tip_cents", minimum=0, allow_none=True),
            taxes_cents=coerce_int(data.get("taxes_cents"), "taxes_cents", minimum=0, allow_none=True),
            service_charge_cents=coerce_int(
                data.get("service_charge_cents"), "service_charge_cents", minimum=0, allow_none=True
            ),
            user_id=coerce_int(data.get("user_id"), "user_id", minimum=1, allow_none=True),
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        return jsonify({"payment": payment.to_dict()}), 201

    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, PaymentError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/order/<int:order_id>")
@require_auth
@require_role(CASH_HANDLERS)
def order_payments_route(order_id: int):
    if order_service.get_order(order_id) is None:
        return jsonify({"error": "Order not found"}), 404
    payments = payment_service.get_order_payments(order_id)
    return jsonify({"payments": [p.to_dict() for p in payments]}), 200
