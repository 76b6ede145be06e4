# Overview: Flask API routes for service health.

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        database = "unavailable"
    status_code = 200 if database == "ok" else 503
    return jsonify({"status": "ok" if database == "ok" else "degraded", "database": database}), status_code
