# sareepos/routes/system.py
"""System health endpoint."""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from sareepos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)}
    except Exception as e:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": type(e).__name__}


@system_bp.get("/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    return {
        "status": "ok" if ok else "degraded",
        "database": database,
        "time": to_utc_z(utcnow()),
    }, 200 if ok else 503
