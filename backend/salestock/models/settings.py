from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow, to_utc_z
from .products import _num


class CompanySettings(db.Model):
    """
    Single-row company configuration.

    usd_htg_rate is the number of HTG for one USD and must stay > 0; the
    currency normalizer relies on settings_service to guarantee it.
    """
    __tablename__ = "company_settings"

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(255), nullable=False, default="")
    usd_htg_rate = db.Column(db.Numeric(12, 4), nullable=False)
    display_currency = db.Column(db.String(3), nullable=False, default="HTG")
    tva_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "usd_htg_rate": _num(self.usd_htg_rate),
            "display_currency": self.display_currency,
            "tva_rate": _num(self.tva_rate),
            "updated_at": to_utc_z(self.updated_at),
        }
