# Overview: Flask API routes for the dashboard and period analytics.

from flask import Blueprint, current_app, request

from ..services import reporting_service
from .responses import failure, success

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")
analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@dashboard_bp.get("")
def dashboard_route():
    try:
        return success(reporting_service.dashboard_summary())
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return failure("Failed to fetch dashboard data", 500)


@analytics_bp.get("")
def analytics_route():
    """
    Trailing-window analytics.

    Query params: period (days, default 30)
    """
    raw_period = request.args.get("period", "30").strip()
    if not raw_period.isdigit():
        return failure("period must be a whole number of days", 400)
    period = int(raw_period)
    try:
        return success(reporting_service.analytics_summary(period_days=period))
    except ValueError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to build analytics")
        return failure("Failed to fetch analytics data", 500)
