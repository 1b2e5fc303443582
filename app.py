"""Flask application factory for the RedLens crime reporting API."""
import os
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from extensions import db, login_manager, migrate
from utils.logger import REQUEST_ID_HEADER, assign_request_id, init_logging
from utils.security import apply_cors_headers, apply_security_headers, parse_origins

ERROR_FALLBACKS = {
    400: "Bad request",
    401: "Authentication required",
    403: "Access denied",
    404: "Not found",
    405: "Method not allowed",
    409: "Conflict",
}


def _error_message(error: HTTPException) -> str:
    description = getattr(error, "description", None)
    # Werkzeug's stock descriptions are prose for HTML pages.
    if not description or description == type(error).description:
        return ERROR_FALLBACKS.get(error.code, error.name)
    return description


def register_error_handlers(app: Flask) -> None:
    def _json_http_error(error: HTTPException):
        app.logger.warning(
            f"{error.code} {error.name}",
            extra={"path": request.path, "method": request.method},
        )
        return jsonify({"error": _error_message(error)}), error.code

    for code in ERROR_FALLBACKS:
        app.register_error_handler(code, _json_http_error)

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception("500 Internal Server Error")
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(Exception)
    def unhandled_error(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": _error_message(error)}), error.code
        db.session.rollback()
        app.logger.exception("Unhandled exception", extra={"path": request.path})
        return jsonify({"error": "Internal server error"}), 500


def ensure_default_admin(app: Flask) -> None:
    """Make sure the configured admin account exists and can log in."""
    from models import User  # Local import to avoid circular dependency
    from utils.accounts import AccountError, register_user

    admin_email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").lower().strip()
    admin_password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not admin_email or not admin_password:
        return

    admin_user = User.query.filter_by(email=admin_email).first()
    if admin_user:
        updates = False
        if admin_user.role != "Admin":
            admin_user.role = "Admin"
            updates = True
        if not admin_user.is_active:
            admin_user.is_active = True
            updates = True
        if updates:
            db.session.commit()
        return

    try:
        register_user("System Administrator", admin_email, admin_password, "Admin")
    except AccountError:
        app.logger.exception("Default admin could not be created", extra={"email": admin_email})


def ensure_database_exists(database_uri: str) -> None:
    """Create the target database if it does not exist (MySQL + SQLite support)."""
    url = make_url(database_uri)

    if url.drivername.startswith("sqlite"):
        # For SQLite just make sure the parent directory exists.
        if url.database:
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
        return

    if url.drivername.startswith("mysql") and url.database:
        db_name = url.database
        engine = create_engine(url.set(database=None))
        try:
            with engine.connect() as conn:
                conn.execute(text(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4"))
                conn.commit()
        except OperationalError:
            # If we cannot connect/create, let the normal app startup fail loudly later.
            pass
        finally:
            engine.dispose()


def create_app(config_name: Optional[str] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    # Resolve configuration
    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = config_map.get(config_key, ProductionConfig)
    app.config.from_object(config_class())

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])

    # Optional instance-specific overrides
    if not app.config.get("TESTING"):
        app.config.from_pyfile("config.py", silent=True)
    os.makedirs(app.instance_path, exist_ok=True)
    os.makedirs(app.config["REPORT_EXPORT_DIR"], exist_ok=True)

    # Initialize logging early
    logger = init_logging(app)
    app.logger = logger

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.session_protection = "strong"

    @login_manager.user_loader
    def load_user(user_id):
        from models import User  # Local import to avoid circular dependency

        if not user_id:
            return None
        return db.session.get(User, str(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required"}), 401

    # Blueprints
    from routes import analytics_bp, api_bp, auth_bp, crimes_bp, reports_bp, users_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(crimes_bp)
    app.register_blueprint(analytics_bp)

    @app.cli.command("seed-reference-data")
    def seed_reference_data_command():
        """Insert the default crime categories and reporting areas."""
        from utils.reference_data import seed_reference_data

        created = seed_reference_data()
        click.echo(f"Added {created['categories']} categories and {created['locations']} locations.")

    # Error handlers
    register_error_handlers(app)

    allowed_origins = parse_origins(app.config.get("CORS_ALLOWED_ORIGINS"))

    # Request lifecycle hooks
    @app.before_request
    def _before_request() -> None:
        assign_request_id()

    @app.after_request
    def _after_request(response):
        response.headers[REQUEST_ID_HEADER] = getattr(g, "request_id", "") or ""
        apply_cors_headers(response, allowed_origins)
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        import models  # noqa: F401  Register tables before create_all

        db.create_all()
        ensure_default_admin(app)

    return app


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=application.config["PORT"], use_reloader=False)
