# sareepos/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def engine_options_for(database_uri: str, timeout_seconds: int) -> dict:
    if database_uri.startswith("sqlite"):
        # SQLite waits this long for the write lock before raising "database is locked"
        return {"connect_args": {"timeout": timeout_seconds}}
    return {"pool_pre_ping": True}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/sareepos.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///sareepos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound for one checkout transaction (seconds)
    TRANSACTION_TIMEOUT_SECONDS = _env_int("TRANSACTION_TIMEOUT_SECONDS", 30)

    # Checkout attempts before an invoice collision is reported
    PURCHASE_MAX_ATTEMPTS = _env_int("PURCHASE_MAX_ATTEMPTS", 3)

    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "INV")
    STOCK_CODE_PREFIX = os.environ.get("STOCK_CODE_PREFIX", "HS")

    # IANA zone name (e.g. "Asia/Kolkata"). Unset means the server's local zone.
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE") or None

    LOW_STOCK_THRESHOLD = _env_int("LOW_STOCK_THRESHOLD", 10)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
        ).split(",")
        if origin.strip()
    ]
