# Overview: Service-layer operations for the activity log; append and filtered read.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..extensions import db
from ..models import ActivityLog

"""
Activity log invariants (authoritative)

- Append-only business event record; no updates or deletes.
- Entries are written inside the same DB transaction as the event they
  record (record_activity only flushes).
- user_id NULL means the event was originated by the system.
"""

ACTION_SALE_CREATED = "sale_created"
ACTION_SALE_DELETED = "sale_deleted"
ACTION_STOCK_ADJUSTED = "stock_adjusted"
ACTION_PRODUCT_ADDED = "product_added"
ACTION_SETTINGS_UPDATED = "settings_updated"
ACTION_USER_LOGIN = "user_login"
ACTION_USER_LOGOUT = "user_logout"

MAX_PAGE_SIZE = 200


def record_activity(
    *,
    action_type: str,
    entity_type: str,
    description: str,
    entity_id=None,
    user_id: int | None = None,
    metadata: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        description=description,
        details=metadata or {},
    )
    db.session.add(entry)
    db.session.flush()
    return entry


@dataclass
class ActivityFilters:
    action_type: str | None = None
    user_id: int | None = None
    entity_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    search: str | None = None


@dataclass
class ActivityPage:
    items: list[ActivityLog] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.total else 0


def list_activity_logs(filters: ActivityFilters | None = None, *, page: int = 1, page_size: int = 50) -> ActivityPage:
    """Newest first. Date bounds are inclusive; search is a case-insensitive substring of description."""
    filters = filters or ActivityFilters()
    page = max(1, page)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    q = ActivityLog.query
    if filters.action_type:
        q = q.filter(ActivityLog.action_type == filters.action_type)
    if filters.user_id is not None:
        q = q.filter(ActivityLog.user_id == filters.user_id)
    if filters.entity_type:
        q = q.filter(ActivityLog.entity_type == filters.entity_type)
    if filters.start is not None:
        q = q.filter(ActivityLog.created_at >= filters.start)
    if filters.end is not None:
        q = q.filter(ActivityLog.created_at <= filters.end)
    if filters.search:
        q = q.filter(ActivityLog.description.ilike(f"%{filters.search}%"))

    total = q.count()
    rows = (
        q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return ActivityPage(items=rows, total=total, page=page, page_size=page_size)
