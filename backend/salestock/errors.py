# Overview: Error taxonomy for sale processing and stock reconciliation.

"""
Every failure the sale engine reports to a caller is a SaleError subclass.

Routes turn them into the single response envelope:

    {"success": false, "error": "<message>", ...details}

using the status_code carried by the class. Nothing here retries; a
retryable flag only tells the client that resubmitting may succeed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


class SaleError(Exception):
    """Base class for sale engine errors."""

    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_envelope(self) -> dict:
        body = {"success": False, "error": self.message}
        body.update(self.details)
        if self.retryable:
            body["retryable"] = True
        return body


class ValidationError(SaleError):
    """Malformed input. Always raised before any write."""


class AuthenticationError(ValidationError):
    """Missing, invalid or expired bearer credential."""

    status_code = 401


class InsufficientStockError(SaleError):
    """A cart line asks for more than the resolved stock field holds."""

    status_code = 409

    def __init__(
        self,
        product_id: int,
        requested: Decimal,
        available: Decimal,
        *,
        product_name: str | None = None,
        shortages: list[dict] | None = None,
    ):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "requested": float(requested),
                "available": float(available),
                "items": shortages or [],
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class StockChangedError(InsufficientStockError):
    """
    Stock moved between the validation pass and the conditional decrement.

    Another sale committed against the same product first. The whole sale
    is rolled back; the client may resubmit.
    """

    retryable = True


class PermissionDeniedError(SaleError):
    status_code = 403


class SaleNotFoundError(SaleError):
    status_code = 404


class ReversalFailedError(SaleError):
    """Fatal reversal failure; the reversal transaction was rolled back."""

    status_code = 500


class SettingsError(SaleError):
    """Invalid exchange rate, display currency or tax configuration."""


@dataclass(frozen=True)
class PartialStockRestoreFailure:
    """
    One sale item whose stock could not be restored during a reversal.

    Recorded and logged, never raised: the reversal continues with the
    remaining items.
    """

    sale_item_id: int
    product_id: int | None
    product_name: str
    quantity: Decimal
    reason: str

    def to_dict(self) -> dict:
        return {
            "sale_item_id": self.sale_item_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": float(self.quantity),
            "reason": self.reason,
        }
