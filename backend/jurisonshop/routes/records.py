# Overview: Flask API route for the records (activity history) view.

from flask import Blueprint, request, jsonify, current_app

from ..services import records_service
from ..validation import ValidationError, UpstreamStoreError

records_bp = Blueprint("records", __name__, url_prefix="/api/records")


@records_bp.get("")
def records_route():
    """
    Query params:
    - type: "inventory" (default) or "transactions"
    """
    record_type = request.args.get("type", "inventory")
    try:
        data = records_service.get_records(record_type)
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except UpstreamStoreError as e:
        current_app.logger.error("Records API error: %s", e)
        return jsonify({"success": False, "error": str(e) or "Internal server error"}), 500
    return jsonify({"success": True, "data": data})
