"""Blueprint registration and service health routes."""
from datetime import datetime

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from .analytics import analytics_bp
from .auth import auth_bp
from .crimes import crimes_bp
from .reports import reports_bp
from .users import users_bp

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.route("/ping", methods=["GET"])
def ping():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("Database ping failed")
        return jsonify({"status": "error", "error": "Database unavailable"}), 503
    return jsonify({"status": "ok", "timestamp": datetime.utcnow().isoformat()})


__all__ = ["api_bp", "analytics_bp", "auth_bp", "crimes_bp", "reports_bp", "users_bp"]
