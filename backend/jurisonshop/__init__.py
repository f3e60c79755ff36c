# backend/jurisonshop/__init__.py
import logging
import os
import time
import traceback
from logging.handlers import RotatingFileHandler

from flask import Flask, request, jsonify, g
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate


def _allowed_origins(app: Flask) -> set[str]:
    raw = app.config.get("FRONTEND_URL") or ""
    return {o.strip().rstrip("/") for o in raw.split(",") if o.strip()}


def configure_logging(app: Flask) -> None:
    app.logger.setLevel(logging.DEBUG if app.debug else logging.INFO)

    if not app.debug and not app.testing:
        log_dir = app.config["LOG_DIR"]
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "jurisonshop.log"), maxBytes=102400, backupCount=10
        )
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "success": False,
            "message": f"Route not found: {request.method} {request.path}",
        }), 404

    @app.errorhandler(413)
    def too_large(e):
        return jsonify({"success": False, "message": "Request body too large"}), 413

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "message": e.description}), e.code

        app.logger.exception("Global error")
        db.session.rollback()
        body = {"success": False, "message": str(e) or "Internal Server Error"}
        if app.config.get("APP_ENV") == "development":
            body["stack"] = traceback.format_exc()
        return jsonify(body), 500


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    configure_logging(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.transactions import transactions_bp
    from .routes.dashboard import dashboard_bp
    from .routes.records import records_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(records_bp)

    register_error_handlers(app)

    allowed_origins = _allowed_origins(app)

    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()
        if request.method == "OPTIONS":
            return "", 204

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin.rstrip("/") in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
        return response

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(
            "%s %s %s %.1fms", request.method, request.full_path.rstrip("?"), response.status_code, elapsed_ms
        )
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
