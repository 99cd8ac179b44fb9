# Overview: Multi-currency totals, discount and tax; the one place revenue is computed.

"""
Currency & tax normalization (authoritative)

Every revenue figure in the service (sale totals verification, per-sale
display, reporting) is computed here. Do not re-derive the formulas at a
call site.

Currencies:
- HTG is the local currency, USD the secondary one.
- rate is the number of HTG for one USD and must be > 0. This module does
  not check it; settings_service and the app factory do.
- An item without a currency tag is HTG.

Unified total:
- display HTG: local + secondary * rate
- display USD: secondary + local / rate

Tax is a flat percentage applied to the post-discount amount.
All arithmetic is Decimal; inputs may be Decimal, int, float or str.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

LOCAL_CURRENCY = "HTG"
SECONDARY_CURRENCY = "USD"
CURRENCIES = (LOCAL_CURRENCY, SECONDARY_CURRENCY)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_currency(code: str | None) -> str:
    if not code:
        return LOCAL_CURRENCY
    code = code.upper()
    if code not in CURRENCIES:
        raise ValueError(f"Unsupported currency: {code}")
    return code


def _get(item: Any, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


@dataclass(frozen=True)
class UnifiedTotals:
    local_total: Decimal
    secondary_total: Decimal
    unified_total: Decimal
    display_currency: str

    @property
    def has_multiple_currencies(self) -> bool:
        return self.local_total > 0 and self.secondary_total > 0

    def to_dict(self) -> dict:
        return {
            "local_total": float(self.local_total),
            "secondary_total": float(self.secondary_total),
            "unified_total": float(self.unified_total),
            "display_currency": self.display_currency,
            "has_multiple_currencies": self.has_multiple_currencies,
        }


@dataclass(frozen=True)
class SaleTotals:
    subtotal_ht: Decimal
    discount: Decimal
    after_discount: Decimal
    tax: Decimal
    total_ttc: Decimal
    profit: Decimal
    currency: str

    def to_dict(self) -> dict:
        return {
            "subtotal_ht": float(self.subtotal_ht),
            "discount": float(self.discount),
            "after_discount": float(self.after_discount),
            "tax": float(self.tax),
            "total_ttc": float(self.total_ttc),
            "profit": float(self.profit),
            "currency": self.currency,
        }


def _combine(local: Decimal, secondary: Decimal, rate: Decimal, display_currency: str) -> Decimal:
    if display_currency == LOCAL_CURRENCY:
        return local + secondary * rate
    return secondary + local / rate


def convert(amount, from_currency: str | None, to_currency: str, rate) -> Decimal:
    amount = to_decimal(amount)
    source = normalize_currency(from_currency)
    target = normalize_currency(to_currency)
    if source == target:
        return amount
    rate = to_decimal(rate)
    if source == SECONDARY_CURRENCY:
        return amount * rate
    return amount / rate


def unify(items: Iterable[Any], rate, display_currency: str) -> UnifiedTotals:
    """Split item subtotals by currency and express their sum in display_currency."""
    display_currency = normalize_currency(display_currency)
    rate = to_decimal(rate)

    local = ZERO
    secondary = ZERO
    for item in items:
        subtotal = to_decimal(_get(item, "subtotal"))
        if normalize_currency(_get(item, "currency")) == SECONDARY_CURRENCY:
            secondary += subtotal
        else:
            local += subtotal

    return UnifiedTotals(
        local_total=local,
        secondary_total=secondary,
        unified_total=_combine(local, secondary, rate, display_currency),
        display_currency=display_currency,
    )


def apply_tax(amount, tax_rate_percent) -> Decimal:
    return to_decimal(amount) * (1 + to_decimal(tax_rate_percent) / HUNDRED)


def compute_discount(subtotal, discount_type: str | None, discount_value) -> Decimal:
    """
    Discount amount for a cart, never more than the subtotal.

    discount_type is "percentage" (value is a percent), "amount" (value is
    in the display currency) or "none".
    """
    subtotal = to_decimal(subtotal)
    value = to_decimal(discount_value)
    if value <= 0 or discount_type in (None, "", "none"):
        return ZERO
    if discount_type == "percentage":
        return min(subtotal * value / HUNDRED, subtotal)
    if discount_type == "amount":
        return min(value, subtotal)
    raise ValueError(f"Unknown discount type: {discount_type}")


def unify_profit(items: Iterable[Any], rate, display_currency: str, discount_percent=ZERO) -> Decimal:
    """Unified profit; a discount reduces profit in proportion to its share of the subtotal."""
    display_currency = normalize_currency(display_currency)
    rate = to_decimal(rate)

    local = ZERO
    secondary = ZERO
    for item in items:
        profit = to_decimal(_get(item, "profit_amount"))
        if normalize_currency(_get(item, "currency")) == SECONDARY_CURRENCY:
            secondary += profit
        else:
            local += profit

    unified = _combine(local, secondary, rate, display_currency)
    return unified * (1 - to_decimal(discount_percent) / HUNDRED)


def calculate_sale_total(
    items: Iterable[Any],
    discount_amount,
    rate,
    display_currency: str,
    tax_rate_percent,
    discount_currency: str | None = None,
) -> SaleTotals:
    """
    Full breakdown of one sale in display_currency.

    discount_amount is expressed in discount_currency (defaults to the
    display currency) and converted before it is subtracted.
    """
    items = list(items)
    display_currency = normalize_currency(display_currency)

    subtotal_ht = unify(items, rate, display_currency).unified_total
    discount = convert(discount_amount, discount_currency or display_currency, display_currency, rate)
    after_discount = max(ZERO, subtotal_ht - discount)
    total_ttc = apply_tax(after_discount, tax_rate_percent)

    discount_percent = (discount / subtotal_ht) * HUNDRED if subtotal_ht > 0 else ZERO

    return SaleTotals(
        subtotal_ht=subtotal_ht,
        discount=discount,
        after_discount=after_discount,
        tax=total_ttc - after_discount,
        total_ttc=total_ttc,
        profit=unify_profit(items, rate, display_currency, discount_percent),
        currency=display_currency,
    )
