# backend/salestock/config.py
from __future__ import annotations
import os

SUPPORTED_CURRENCIES = ("HTG", "USD")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///salestock.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fallbacks used until a company_settings row exists.
    # USD_HTG_RATE is the number of HTG for one USD.
    USD_HTG_RATE = os.environ.get("USD_HTG_RATE", "132")
    DISPLAY_CURRENCY = os.environ.get("DISPLAY_CURRENCY", "HTG")
    TVA_RATE = os.environ.get("TVA_RATE", "10")

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))


def validate_currency_config(config) -> None:
    """
    Reject exchange configuration the currency normalizer cannot work with.

    Called once by the app factory so a bad USD_HTG_RATE fails at startup
    instead of producing a division by zero in the middle of a report.
    """
    from decimal import Decimal, InvalidOperation

    try:
        rate = Decimal(str(config["USD_HTG_RATE"]))
        tva = Decimal(str(config["TVA_RATE"]))
    except (InvalidOperation, KeyError) as exc:
        raise ValueError("USD_HTG_RATE and TVA_RATE must be numeric") from exc

    if rate <= 0:
        raise ValueError("USD_HTG_RATE must be greater than zero")
    if tva < 0:
        raise ValueError("TVA_RATE cannot be negative")
    if config["DISPLAY_CURRENCY"] not in SUPPORTED_CURRENCIES:
        raise ValueError(f"DISPLAY_CURRENCY must be one of {', '.join(SUPPORTED_CURRENCIES)}")
