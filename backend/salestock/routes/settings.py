# Overview: Company settings API (exchange rate, display currency, tax rate).

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import SaleError
from ..models.auth import ROLE_ADMIN
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _settings_payload() -> dict:
    row = settings_service.get_company_settings()
    current = settings_service.get_currency_settings()
    return {
        "company_name": row.company_name if row else "",
        "usd_htg_rate": float(current.usd_htg_rate),
        "display_currency": current.display_currency,
        "tva_rate": float(current.tva_rate),
        "stored": row is not None,
    }


@settings_bp.get("/company")
@require_auth
def get_company_settings_route():
    try:
        return jsonify({"success": True, "settings": _settings_payload()}), 200
    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code


@settings_bp.put("/company")
@require_auth
@require_role(ROLE_ADMIN)
def update_company_settings_route():
    """Body: any of company_name, usd_htg_rate (> 0), display_currency, tva_rate."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400

        settings_service.update_company_settings(g.current_user, data)
        return jsonify({"success": True, "settings": _settings_payload()}), 200

    except SaleError as e:
        return jsonify(e.to_envelope()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update company settings")
        return jsonify({"success": False, "error": "Internal server error"}), 500
