# wims/settings.py
from __future__ import annotations

import os
from datetime import timedelta


def _normalize_db_url(url: str | None) -> str | None:
    if not url:
        return None
    u = url.strip()

    # Render/Heroku style URLs
    if u.startswith("postgres://"):
        u = u.replace("postgres://", "postgresql+psycopg2://", 1)

    if u.startswith("postgresql://"):
        u = u.replace("postgresql://", "postgresql+psycopg2://", 1)

    return u


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


class Config:
    # ======================
    # Core
    # ======================
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # ======================
    # Database
    # ======================
    # Priority:
    # 1) SQLALCHEMY_DATABASE_URI (manual override)
    # 2) DATABASE_URL (production)
    # 3) Local SQLite file
    _env_db = _normalize_db_url(os.environ.get("DATABASE_URL"))
    _override_db = _normalize_db_url(os.environ.get("SQLALCHEMY_DATABASE_URI"))

    SQLALCHEMY_DATABASE_URI = _override_db or _env_db or "sqlite:///wims.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # ======================
    # Session (cookie names kept from the browser build)
    # ======================
    SESSION_COOKIE_NAME = "wims-session-v4"
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    REMEMBER_COOKIE_NAME = "wims-remember-v4"
    REMEMBER_COOKIE_DURATION = timedelta(days=30)

    # ======================
    # Flask-Limiter
    # ======================
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = (
        os.environ.get("LIMITER_STORAGE_URL")
        or os.environ.get("REDIS_URL")
        or "memory://"
    )
    RATELIMIT_HEADERS_ENABLED = True

    # ======================
    # Pricing workflow
    # ======================
    CURRENCY = "INR"
    TAX_RATE = _env_float("WIMS_TAX_RATE", 0.10)
    DEFAULT_ADJUSTMENT_RANGE = (-15.0, 15.0)

    # "manual": only an explicit complete call moves approved -> completed
    # "on_bill": generating a bill for an approved order also completes it
    ORDER_COMPLETION_POLICY = os.environ.get("WIMS_ORDER_COMPLETION_POLICY", "on_bill")

    # "one_per_type": one regular and one GST bill per order
    # "one_per_order": a single bill per order
    BILL_POLICY = os.environ.get("WIMS_BILL_POLICY", "one_per_type")

    # ======================
    # Accounts
    # ======================
    ADMIN_REGISTRATION_CODE = os.environ.get("WIMS_ADMIN_REGISTRATION_CODE", "wims-admin")
    SALESMAN_EMAIL_DOMAIN = "wims.com"


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"
    LOG_LEVEL = "WARNING"
