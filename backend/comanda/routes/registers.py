# Overview: Flask API routes for cash register sessions; parses input and returns JSON responses.

# backend/comanda/routes/registers.py
"""
Register Session API Routes

DESIGN:
- Session lifecycle: open -> close (immutable once closed)
- Only one session can be open at a time
- Payments are folded in by the payment routes, not here

SECURITY:
- CASH_HANDLERS (admin, cashier) only
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import register_service
from ..services.register_service import RegisterSessionError, RegisterSessionNotFoundError
from ..validation import ValidationError, require_json_object, coerce_int
from ..decorators import require_auth, require_role
from ..roles import CASH_HANDLERS


registers_bp = Blueprint("registers", __name__, url_prefix="/api/registers")


@registers_bp.post("/open")
@require_auth
@require_role(CASH_HANDLERS)
def open_session_route():
    """
    Open the register.

    Request body:
    {
        "opening_amount_cents": 10000,
        "notes": "Float from safe"  (optional)
    }

    Returns:
        201: Session opened
        400: Invalid amount
        409: A session is already open
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        opening = coerce_int(data.get("opening_amount_cents"), "opening_amount_cents", minimum=0)

        session = register_service.open_register_session(
            g.current_user.id,
            opening,
            notes=data.get("notes") or "",
        )
        return jsonify({"session": session.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RegisterSessionError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to open register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.post("/<int:session_id>/close")
@require_auth
@require_role(CASH_HANDLERS)
def close_session_route(session_id: int):
    """
    Close a session with the counted cash.

    Request body:
    {
        "actual_closing_amount_cents": 14500,
        "notes": "Short 5.00"  (optional)
    }

    Returns:
        200: Session closed, difference calculated
        404: Session not found
        409: Session already closed
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        actual = coerce_int(data.get("actual_closing_amount_cents"), "actual_closing_amount_cents", minimum=0)

        session = register_service.close_register_session(session_id, actual, notes=data.get("notes") or "")
        return jsonify({"session": session.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except RegisterSessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RegisterSessionError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to close register session")
        return jsonify({"error": "Internal server error"}), 500


@registers_bp.get("/active")
@require_auth
@require_role(CASH_HANDLERS)
def active_session_route():
    session = register_service.get_active_register_session()
    return jsonify({"session": session.to_dict() if session else None}), 200


@registers_bp.get("/<int:session_id>/summary")
@require_auth
@require_role(CASH_HANDLERS)
def session_summary_route(session_id: int):
    try:
        return jsonify(register_service.get_session_summary(session_id)), 200
    except RegisterSessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@registers_bp.get("/")
@registers_bp.get("")
@require_auth
@require_role(CASH_HANDLERS)
def list_sessions_route():
    try:
        limit = coerce_int(request.args.get("limit", 50), "limit", minimum=1)
        sessions = register_service.list_register_sessions(
            status=request.args.get("status"),
            limit=min(limit, 500),
        )
        return jsonify({"sessions": [s.to_dict(include_transactions=False) for s in sessions]}), 200
    except (ValidationError, RegisterSessionError) as e:
        return jsonify({"error": str(e)}), 400
