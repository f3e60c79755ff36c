# Overview: Flask API route for dashboard metrics.

from flask import Blueprint, jsonify, current_app

from ..services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
def dashboard_route():
    """
    Business totals, low stock, top sellers and this month's daily profit.

    Always answers 200 with success=true. When aggregation fails the payload
    is zero-filled and the response carries degraded=true.
    """
    current_app.logger.debug("Dashboard API called")
    data, degraded = dashboard_service.get_dashboard()
    body = {"success": True, "data": data}
    if degraded:
        body["degraded"] = True
    return jsonify(body)
