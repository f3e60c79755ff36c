# backend/jurisonshop/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file in the working directory unless DATABASE_URL points at Postgres
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///jurisonshop.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Only an explicit "development" exposes stack traces in error responses
    APP_ENV = os.environ.get("APP_ENV", "production")

    # Comma-separated list; the React admin runs on :3000 by default
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # JSON bodies are capped at 10 MB
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # Dashboard month buckets and display dates use this zone
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE", "Asia/Manila")

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    LOG_DIR = os.environ.get("LOG_DIR", "logs")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    APP_ENV = "test"
    SHOP_TIMEZONE = "UTC"
