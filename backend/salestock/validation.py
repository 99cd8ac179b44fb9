from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .models.sales import DISCOUNT_NONE, DISCOUNT_TYPES
from .services.currency_service import normalize_currency


# Largest amount or quantity accepted on a cart line; keeps values inside Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")

# Scale of every quantity and money column
AMOUNT_PLACES = 2

PAYMENT_METHODS = {"cash", "card", "mobile_money", "check", "credit", "transfer"}


@dataclass(frozen=True)
class CartLine:
    product_id: int
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    currency: str
    unit: str | None = None


@dataclass(frozen=True)
class Cart:
    """Parsed create-sale request. Totals are the caller's, in the display currency."""
    items: list[CartLine]
    payment_method: str
    subtotal: Decimal
    total_amount: Decimal
    discount_type: str = DISCOUNT_NONE
    discount_value: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    customer_name: str | None = None
    customer_address: str | None = None
    requested_by_product: dict[int, Decimal] = field(default_factory=dict)


def parse_decimal(
    value: Any,
    name: str,
    *,
    positive: bool = False,
    allow_none: bool = False,
    max_places: int | None = None,
) -> Decimal | None:
    """
    Strict decimal coercion for request fields.

    Accepts int, float, Decimal and numeric strings. Rejects booleans,
    NaN/Infinity and anything above MAX_AMOUNT. With max_places, also
    rejects values carrying more significant decimals than the column
    stores ("0.004" with max_places=2); trailing zeros are fine.
    """
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{name} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be a number")

    if not number.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if abs(number) > MAX_AMOUNT:
        raise ValidationError(f"{name} is too large")
    if positive and number <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    if not positive and number < 0:
        raise ValidationError(f"{name} cannot be negative")
    if max_places is not None and number != number.quantize(Decimal(1).scaleb(-max_places)):
        raise ValidationError(f"{name} cannot have more than {max_places} decimal places")
    return number


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{name} must be an integer")


def optional_text(value: Any, name: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value or None


def _parse_line(raw: Any, index: int) -> CartLine:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    prefix = f"items[{index}]"
    try:
        currency = normalize_currency(raw.get("currency"))
    except ValueError as exc:
        raise ValidationError(f"{prefix}.currency: {exc}")

    return CartLine(
        product_id=parse_int(raw.get("product_id"), f"{prefix}.product_id"),
        product_name=optional_text(raw.get("product_name"), f"{prefix}.product_name") or "",
        quantity=parse_decimal(raw.get("quantity"), f"{prefix}.quantity", positive=True, max_places=AMOUNT_PLACES),
        unit_price=parse_decimal(raw.get("unit_price"), f"{prefix}.unit_price", max_places=AMOUNT_PLACES),
        subtotal=parse_decimal(raw.get("subtotal"), f"{prefix}.subtotal", max_places=AMOUNT_PLACES),
        currency=currency,
        unit=optional_text(raw.get("unit"), f"{prefix}.unit", max_length=32),
    )


def parse_cart(data: Any) -> Cart:
    """Validate a create-sale payload. Raises ValidationError; never touches the database."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Cart must contain at least one item")

    items = [_parse_line(raw, i) for i, raw in enumerate(raw_items)]

    payment_method = optional_text(data.get("payment_method"), "payment_method", max_length=32) or "cash"
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"payment_method must be one of {', '.join(sorted(PAYMENT_METHODS))}"
        )

    discount_type = data.get("discount_type") or DISCOUNT_NONE
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"discount_type must be one of {', '.join(DISCOUNT_TYPES)}")

    discount_value = parse_decimal(data.get("discount_value"), "discount_value", allow_none=True) or Decimal("0")
    if discount_type == "percentage" and discount_value > 100:
        raise ValidationError("discount_value cannot exceed 100 percent")

    requested: dict[int, Decimal] = {}
    for line in items:
        requested[line.product_id] = requested.get(line.product_id, Decimal("0")) + line.quantity

    return Cart(
        items=items,
        payment_method=payment_method,
        subtotal=parse_decimal(data.get("subtotal"), "subtotal"),
        total_amount=parse_decimal(data.get("total_amount"), "total_amount"),
        discount_type=discount_type,
        discount_value=discount_value,
        discount_amount=parse_decimal(data.get("discount_amount"), "discount_amount", allow_none=True) or Decimal("0"),
        customer_name=optional_text(data.get("customer_name"), "customer_name"),
        customer_address=optional_text(data.get("customer_address"), "customer_address"),
        requested_by_product=requested,
    )
