# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory routes: stock movement history, manual restock, low-stock alerts.

Stock counters have no other write path over HTTP; sales and their
reversal move stock through the sales routes.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import SaleError
from ..models.auth import ROLE_ADMIN
from ..services import stock_ledger_service
from ..validation import AMOUNT_PLACES, parse_decimal, parse_int


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/movements")
@require_auth
def list_movements_route():
    """
    Query params: product_id, sale_id, movement_type (in|out), limit (max 500)
    """
    limit = max(1, min(request.args.get("limit", 200, type=int), 500))
    movements = stock_ledger_service.list_stock_movements(
        product_id=request.args.get("product_id", type=int),
        sale_id=request.args.get("sale_id", type=int),
        movement_type=request.args.get("movement_type"),
        limit=limit,
    )
    return jsonify({
        "success": True,
        "movements": [m.to_dict() for m in movements],
        "count": len(movements),
    }), 200


@inventory_bp.post("/restock")
@require_auth
@require_role(ROLE_ADMIN)
def restock_route():
    """
    Add stock to a product through its resolved counter.

    Body: {"product_id": int, "quantity": number, "reason": str?}
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = parse_int(data.get("product_id"), "product_id")
        quantity = parse_decimal(data.get("quantity"), "quantity", positive=True, max_places=AMOUNT_PLACES)

        movement = stock_ledger_service.restock_product(
            g.current_user, product_id, quantity, reason=data.get("reason")
        )
        return jsonify({"success": True, "movement": movement.to_dict()}), 201

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@inventory_bp.get("/alerts")
@require_auth
def stock_alerts_route():
    alerts = stock_ledger_service.get_stock_alerts()
    return jsonify({"success": True, "alerts": alerts, "count": len(alerts)}), 200
