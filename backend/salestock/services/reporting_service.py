# Overview: Service-layer operations for reporting; period revenue, tax and profit.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import selectinload

from ..errors import ValidationError
from ..models import Sale
from ..time_utils import parse_range_bound, to_utc_z
from .currency_service import ZERO, calculate_sale_total
from .settings_service import get_currency_settings


def _parse_range(start: str | None, end: str | None):
    try:
        start_dt = parse_range_bound(start) if start else None
        end_dt = parse_range_bound(end, end=True) if end else None
    except ValueError:
        raise ValidationError("start_date and end_date must be ISO-8601 dates")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start_date must be before end_date")
    return start_dt, end_dt


def period_stats(start: str | None = None, end: str | None = None) -> dict:
    """
    Revenue summary for sales created in [start, end].

    Every amount is recomputed from the sale items through
    currency_service.calculate_sale_total with the current settings, so a
    report and a single sale view always agree.
    """
    start_dt, end_dt = _parse_range(start, end)
    settings = get_currency_settings()

    q = Sale.query.options(selectinload(Sale.items))
    if start_dt:
        q = q.filter(Sale.created_at >= start_dt)
    if end_dt:
        q = q.filter(Sale.created_at <= end_dt)
    sales = q.order_by(Sale.created_at.asc()).all()

    revenue_ht = ZERO
    discounts = ZERO
    tax = ZERO
    revenue_ttc = ZERO
    profit = ZERO
    items_sold = Decimal("0")
    by_payment_method: dict[str, Decimal] = {}

    for sale in sales:
        totals = calculate_sale_total(
            sale.items,
            sale.discount_amount,
            settings.usd_htg_rate,
            settings.display_currency,
            settings.tva_rate,
            discount_currency=sale.currency,
        )
        revenue_ht += totals.after_discount
        discounts += totals.discount
        tax += totals.tax
        revenue_ttc += totals.total_ttc
        profit += totals.profit
        items_sold += sum((Decimal(item.quantity) for item in sale.items), Decimal("0"))

        method = sale.payment_method or "cash"
        by_payment_method[method] = by_payment_method.get(method, ZERO) + totals.total_ttc

    count = len(sales)
    return {
        "start_date": to_utc_z(start_dt),
        "end_date": to_utc_z(end_dt),
        "currency": settings.display_currency,
        "sales_count": count,
        "items_sold": float(items_sold),
        "revenue_ht": float(revenue_ht),
        "discounts": float(discounts),
        "tax": float(tax),
        "revenue_ttc": float(revenue_ttc),
        "profit": float(profit),
        "average_sale": float(revenue_ttc / count) if count else 0.0,
        "by_payment_method": {k: float(v) for k, v in sorted(by_payment_method.items())},
    }
