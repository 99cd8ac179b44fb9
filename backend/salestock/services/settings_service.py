# Overview: Company settings (exchange rate, display currency, tax rate) with validation.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..errors import PermissionDeniedError, SettingsError
from ..extensions import db
from ..models import CompanySettings, User
from .activity_service import ACTION_SETTINGS_UPDATED, record_activity
from .currency_service import CURRENCIES


@dataclass(frozen=True)
class CurrencySettings:
    """Validated inputs for currency_service: rate > 0, known display currency, tax >= 0."""
    usd_htg_rate: Decimal
    display_currency: str
    tva_rate: Decimal


def _validated(rate, display_currency, tva_rate) -> CurrencySettings:
    try:
        rate = Decimal(str(rate))
        tva_rate = Decimal(str(tva_rate))
    except (InvalidOperation, ValueError):
        raise SettingsError("usd_htg_rate and tva_rate must be numeric")

    if not rate.is_finite() or rate <= 0:
        raise SettingsError("usd_htg_rate must be greater than zero")
    if not tva_rate.is_finite() or tva_rate < 0 or tva_rate > 100:
        raise SettingsError("tva_rate must be between 0 and 100")
    if display_currency not in CURRENCIES:
        raise SettingsError(f"display_currency must be one of {', '.join(CURRENCIES)}")

    return CurrencySettings(usd_htg_rate=rate, display_currency=display_currency, tva_rate=tva_rate)


def get_company_settings() -> CompanySettings | None:
    return db.session.query(CompanySettings).order_by(CompanySettings.id.asc()).first()


def get_currency_settings() -> CurrencySettings:
    """
    Currency settings from the company_settings row, falling back to app config.

    Raises SettingsError if the stored values are unusable.
    """
    row = get_company_settings()
    if row is not None:
        return _validated(row.usd_htg_rate, row.display_currency, row.tva_rate)

    cfg = current_app.config
    return _validated(cfg["USD_HTG_RATE"], cfg["DISPLAY_CURRENCY"], cfg["TVA_RATE"])


def update_company_settings(actor: User, data: dict) -> CompanySettings:
    if actor is None or not actor.is_admin:
        raise PermissionDeniedError("Only administrators can change company settings")

    current = get_currency_settings()
    validated = _validated(
        data.get("usd_htg_rate", current.usd_htg_rate),
        data.get("display_currency", current.display_currency),
        data.get("tva_rate", current.tva_rate),
    )

    row = get_company_settings()
    if row is None:
        row = CompanySettings(company_name="")
        db.session.add(row)

    if "company_name" in data:
        row.company_name = (data.get("company_name") or "").strip()
    row.usd_htg_rate = validated.usd_htg_rate
    row.display_currency = validated.display_currency
    row.tva_rate = validated.tva_rate
    db.session.flush()

    record_activity(
        action_type=ACTION_SETTINGS_UPDATED,
        entity_type="company_settings",
        entity_id=row.id,
        user_id=actor.id,
        description="Company settings updated",
        metadata={
            "usd_htg_rate": float(validated.usd_htg_rate),
            "display_currency": validated.display_currency,
            "tva_rate": float(validated.tva_rate),
        },
    )
    db.session.commit()
    return row
