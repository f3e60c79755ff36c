# backend/jurisonshop/routes/system.py
"""
System endpoints: welcome page, health, and a database connectivity probe.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

STARTED_AT = time.monotonic()


@system_bp.get("/")
def index():
    """Welcome message and a directory of the API."""
    return {
        "success": True,
        "message": "Welcome to JurisonShop Backend API!",
        "documentation": {
            "health": "/api/health - Check server status",
            "testDb": "/api/test-db - Test database connection",
            "products": "/api/products - List all products",
            "transactions": "/api/transactions - List all transactions",
            "dashboard": "/api/dashboard - Real-time business stats",
            "records": "/api/records?type=inventory|transactions - View history",
            "createTransaction": "POST /api/transactions - Create new transaction",
        },
        "timestamp": to_utc_z(utcnow()),
    }


@system_bp.get("/api/health")
def health():
    """Liveness probe; does not touch the database."""
    return {
        "status": "healthy",
        "timestamp": to_utc_z(utcnow()),
        "environment": current_app.config["APP_ENV"],
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


@system_bp.get("/api/test-db")
def test_db():
    """
    Database connectivity check: reads up to three products.

    Returns:
    - 200 with a small sample on success
    - 500 with a hint when the query fails
    """
    start_time = time.time()
    try:
        rows = db.session.query(Product.id, Product.name).order_by(Product.name.asc()).limit(3).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("DB test error: %s", e)
        return jsonify({
            "success": False,
            "error": str(e),
            "hint": "Check DATABASE_URL and that the tables exist (flask shop init-db)",
        }), 500

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "success": True,
        "message": "Database connection successful!",
        "row_count": len(rows),
        "latency_ms": round(elapsed_ms, 2),
        "sample": [{"id": r.id, "name": r.name} for r in rows],
    }
