# Overview: Flask API routes for products operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import SaleError
from ..models.auth import ROLE_ADMIN
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - category: exact category
    - search: case-insensitive name match
    - include_inactive: "1" / "true" to include deactivated products
    """
    include_inactive = (request.args.get("include_inactive") or "").lower() in ("1", "true", "yes")
    products = products_service.list_products(
        category=request.args.get("category") or None,
        search=(request.args.get("search") or "").strip() or None,
        include_inactive=include_inactive,
    )
    items = [products_service.product_view(p) for p in products]
    return jsonify({"success": True, "items": items, "count": len(items)}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    if not product:
        return jsonify({"success": False, "error": "Product not found"}), 404
    return jsonify({"success": True, "product": products_service.product_view(product)}), 200


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    try:
        product = products_service.create_product(g.current_user, request.get_json(silent=True))
        return jsonify({"success": True, "product": products_service.product_view(product)}), 201

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"success": False, "error": "Internal server error"}), 500
