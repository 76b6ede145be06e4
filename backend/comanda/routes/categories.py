# Overview: Flask API routes for menu categories (read-only).

from flask import Blueprint, jsonify

from ..services import catalog_service
from ..decorators import require_auth


categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("/")
@categories_bp.get("")
@require_auth
def list_categories_route():
    """List menu categories in display order. Any active user may read the menu."""
    categories = catalog_service.list_categories()
    return jsonify({"categories": [c.to_dict() for c in categories]}), 200
