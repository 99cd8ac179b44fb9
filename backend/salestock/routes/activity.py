# Overview: Read-only activity log API.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import ValidationError
from ..models.auth import ROLE_ADMIN
from ..services.activity_service import ActivityFilters, list_activity_logs
from ..time_utils import parse_range_bound


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity-logs")


@activity_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_activity_route():
    """
    Paginated activity log, newest first.

    Query params:
    - page, page_size
    - action_type, user_id, entity_type
    - start_date, end_date: ISO dates or datetimes, inclusive
    - search: case-insensitive match on description
    """
    try:
        filters = ActivityFilters(
            action_type=request.args.get("action_type") or None,
            user_id=request.args.get("user_id", type=int),
            entity_type=request.args.get("entity_type") or None,
            start=parse_range_bound(request.args.get("start_date")),
            end=parse_range_bound(request.args.get("end_date"), end=True),
            search=(request.args.get("search") or "").strip() or None,
        )
    except ValueError:
        err = ValidationError("start_date and end_date must be ISO-8601 dates")
        return jsonify(err.to_envelope()), err.status_code

    result = list_activity_logs(
        filters,
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 50, type=int),
    )
    return jsonify({
        "success": True,
        "items": [entry.to_dict() for entry in result.items],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
    }), 200
