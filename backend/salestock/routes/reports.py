# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import SaleError
from ..models.auth import ROLE_ADMIN
from ..services.reporting_service import period_stats


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_role(ROLE_ADMIN)
def summary_route():
    """Query params: start_date, end_date (ISO, inclusive; both optional)."""
    try:
        stats = period_stats(request.args.get("start_date"), request.args.get("end_date"))
        return jsonify({"success": True, "summary": stats}), 200

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"success": False, "error": "Internal server error"}), 500
