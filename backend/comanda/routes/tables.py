# Overview: Flask API routes for dining tables (read-only floor view).

from flask import Blueprint, request, jsonify

from ..services import table_service
from ..decorators import require_auth, require_role
from ..roles import ORDER_HANDLERS


tables_bp = Blueprint("tables", __name__, url_prefix="/api/tables")


@tables_bp.get("/")
@tables_bp.get("")
@require_auth
@require_role(ORDER_HANDLERS)
def list_tables_route():
    """List tables by number; optional ?status=available|occupied|reserved."""
    try:
        tables = table_service.list_tables(status=request.args.get("status"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"tables": [t.to_dict() for t in tables]}), 200
