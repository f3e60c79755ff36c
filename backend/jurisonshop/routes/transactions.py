# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

"""Transactions API routes: list, create (with stock deduction), refund."""

from flask import Blueprint, request, jsonify, current_app

from ..services import transactions_service
from ..validation import ValidationError, NotFoundError, ConflictError, UpstreamStoreError


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
def list_transactions_route():
    """Transactions newest first, with display-ready fields."""
    try:
        data = transactions_service.list_transactions()
    except UpstreamStoreError as e:
        current_app.logger.error("GET /api/transactions error: %s", e)
        return jsonify({"success": False, "error": str(e) or "Failed to fetch transactions"}), 500
    return jsonify({"success": True, "data": data})


@transactions_bp.post("")
def create_transaction_route():
    """
    Create a completed sale and deduct stock for its items.

    Stock deduction failures do not fail the request; they are listed in
    data.stock_failures.
    """
    payload = request.get_json(silent=True) or {}

    try:
        tx = transactions_service.create_transaction(payload)
    except (ValidationError, UpstreamStoreError) as e:
        return jsonify({"success": False, "error": str(e) or "Failed to create transaction"}), 400

    return jsonify({"success": True, "data": tx}), 201


@transactions_bp.patch("/<string:ref>")
def refund_transaction_route(ref: str):
    """
    Refund a transaction (by id or TXN number) and restore its stock.

    The request body is ignored.
    """
    try:
        result = transactions_service.refund_transaction(ref)
    except NotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except (ConflictError, ValidationError) as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except UpstreamStoreError as e:
        current_app.logger.error("Refund of %s failed: %s", ref, e)
        return jsonify({"success": False, "error": str(e)}), 500

    number = result["transaction"]["transaction_number"]
    return jsonify({
        "success": True,
        "message": f"Transaction {number} refunded successfully. Stock restored.",
        "data": result,
    })
