# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/salestock/routes/sales.py
"""Sales API routes: create, list, view and reverse sales"""

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import SaleError, SaleNotFoundError
from ..extensions import db
from ..models import Sale
from ..services import reversal_service, sales_service
from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMIN


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _internal_error(message: str):
    return jsonify({"success": False, "error": message}), 500


@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Record a sale from a cart.

    Available to: admin, seller
    """
    try:
        data = request.get_json(silent=True)
        sale = sales_service.create_sale_from_payload(g.current_user, data)

        return jsonify({
            "success": True,
            "sale": {**sale.to_dict(), "items": [item.to_dict() for item in sale.items]},
            "message": "Sale recorded",
        }), 201

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return _internal_error("Internal server error")


@sales_bp.get("/")
@require_auth
def list_sales_route():
    """
    List sales, newest first. Sellers only see their own.

    Query params: page, page_size
    """
    page = request.args.get("page", 1, type=int)
    page_size = request.args.get("page_size", 50, type=int)

    result = sales_service.list_sales(g.current_user, page=page, page_size=page_size)
    return jsonify({
        "success": True,
        "sales": [sale.to_dict() for sale in result.sales],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
    }), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    """Sale with its items and totals recomputed in the display currency."""
    try:
        sale = db.session.get(Sale, sale_id)
        if not sale or (not g.current_user.is_admin and sale.seller_id != g.current_user.id):
            raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})

        totals = sales_service.get_sale_totals(sale)
        return jsonify({
            "success": True,
            "sale": sale.to_dict(),
            "items": [item.to_dict() for item in sale.items],
            "totals": totals.to_dict(),
        }), 200

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load sale %s", sale_id)
        return _internal_error("Internal server error")


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_sale_route(sale_id: int):
    """
    Delete a sale and return its items to stock.

    Available to: admin
    """
    try:
        summary = reversal_service.delete_sale(g.current_user, sale_id)
        return jsonify(summary.to_dict()), 200

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale %s", sale_id)
        return _internal_error("Internal server error")
