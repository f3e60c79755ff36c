# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/jurisonshop/routes/products.py
"""
Product catalog routes.

PATCH and DELETE take the product id as a query parameter (?id=<uuid>), and
also accept the ?id=eq.<uuid> form the admin UI has used.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import products_service
from ..services.products_service import normalize_product_id
from ..validation import ValidationError, NotFoundError, UpstreamStoreError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """List all products ordered by name."""
    try:
        data = products_service.list_products()
    except UpstreamStoreError as e:
        current_app.logger.error("GET /api/products error: %s", e)
        return jsonify({"success": False, "error": str(e)}), 500
    return jsonify({"success": True, "data": data})


@products_bp.post("")
def create_product_route():
    """Create a product. Requires sku, name and category_name."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}

    try:
        created = products_service.create_product(payload)
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({"success": True, "data": created}), 201


@products_bp.patch("")
def update_product_route():
    """Partially update a product. SKU cannot be changed."""
    product_id = normalize_product_id(request.args.get("id"))
    if not product_id:
        return jsonify({"success": False, "error": "Missing or invalid id"}), 400

    payload = request.get_json(silent=True) or {}

    try:
        updated = products_service.update_product(product_id, payload)
    except NotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except ValidationError as e:
        current_app.logger.warning("PATCH /api/products rejected: %s", e)
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({"success": True, "data": updated})


@products_bp.delete("")
def delete_product_route():
    """Hard-delete a product."""
    product_id = normalize_product_id(request.args.get("id"))
    if not product_id:
        return jsonify({"success": False, "error": "Missing or invalid id"}), 400

    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except (ValidationError, UpstreamStoreError) as e:
        current_app.logger.error("DELETE /api/products error: %s", e)
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({"success": True, "message": "Product deleted successfully"})
