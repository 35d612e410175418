# Overview: Settings provider; serves immutable snapshots of the business parameters.

from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import BusinessSettings
from ..validation import to_cents, to_decimal, to_int


@dataclass(frozen=True)
class LedgerSettings:
    """
    Snapshot of the business parameters for one operation.

    Read once at the start of a checkout or redemption and passed down
    explicitly, so a concurrent admin edit cannot change the rules half way.
    """
    minimum_order_cents: int = 0
    minimum_cart_total_cents: int = 0
    signup_bonus_cents: int = 0
    referral_bonus_cents: int = 0
    points_per_unit: Decimal = Decimal("1")
    redeem_rate_points: int = 10
    redeem_rate_value_cents: int = 100
    accrual_delay_hours: int = 24
    expiry_days: int = 30

    def to_dict(self) -> dict:
        data = asdict(self)
        data["points_per_unit"] = str(self.points_per_unit)
        return data


DEFAULT_SETTINGS = LedgerSettings()


# payload key -> (column, parser)
_MONEY_FIELDS = {
    "signup_bonus": "signup_bonus_cents",
    "referral_bonus": "referral_bonus_cents",
    "minimum_order": "minimum_order_cents",
    "minimum_cart_total": "minimum_cart_total_cents",
    "redeem_rate_value": "redeem_rate_value_cents",
}
_INT_FIELDS = {
    "redeem_rate_points": 1,
    "accrual_delay_hours": 0,
    "expiry_days": 1,
}


def _snapshot(row: BusinessSettings) -> LedgerSettings:
    return LedgerSettings(
        minimum_order_cents=row.minimum_order_cents,
        minimum_cart_total_cents=row.minimum_cart_total_cents,
        signup_bonus_cents=row.signup_bonus_cents,
        referral_bonus_cents=row.referral_bonus_cents,
        points_per_unit=Decimal(row.points_per_unit),
        redeem_rate_points=row.redeem_rate_points,
        redeem_rate_value_cents=row.redeem_rate_value_cents,
        accrual_delay_hours=row.accrual_delay_hours,
        expiry_days=row.expiry_days,
    )


def get_settings() -> LedgerSettings:
    """Most recently saved settings, or the built-in defaults."""
    row = db.session.query(BusinessSettings).order_by(BusinessSettings.id.desc()).first()
    if row is None:
        return DEFAULT_SETTINGS
    return _snapshot(row)


def parse_settings_payload(payload: dict) -> dict:
    """
    Validate an admin payload (major units for money) into column values.

    Omitted keys are left untouched; blank strings reset to the default.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    known = set(_MONEY_FIELDS) | set(_INT_FIELDS) | {"points_per_unit"}
    unknown = sorted(k for k in payload if k not in known)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

    patch: dict = {}
    for key, column in _MONEY_FIELDS.items():
        if key not in payload:
            continue
        raw = payload[key]
        if raw is None or raw == "":
            patch[column] = getattr(DEFAULT_SETTINGS, column)
        else:
            patch[column] = to_cents(raw, key)

    for key, minimum in _INT_FIELDS.items():
        if key not in payload:
            continue
        raw = payload[key]
        if raw is None or raw == "":
            patch[key] = getattr(DEFAULT_SETTINGS, key)
        else:
            patch[key] = to_int(raw, key, minimum=minimum)

    if "points_per_unit" in payload:
        raw = payload["points_per_unit"]
        if raw is None or raw == "":
            patch["points_per_unit"] = DEFAULT_SETTINGS.points_per_unit
        else:
            rate = to_decimal(raw, "points_per_unit")
            if rate < 0:
                raise ValidationError("points_per_unit must be >= 0")
            patch["points_per_unit"] = rate

    if patch.get("redeem_rate_value_cents") == 0:
        raise ValidationError("redeem_rate_value must be greater than 0")

    return patch


def save_settings(payload: dict) -> LedgerSettings:
    """Upsert the single settings row and return the new snapshot."""
    patch = parse_settings_payload(payload)

    row = db.session.query(BusinessSettings).order_by(BusinessSettings.id.desc()).first()
    if row is None:
        row = BusinessSettings(**{**_defaults_as_columns(), **patch})
        db.session.add(row)
    else:
        for column, value in patch.items():
            setattr(row, column, value)

    db.session.commit()
    return _snapshot(row)


def _defaults_as_columns() -> dict:
    return {
        "minimum_order_cents": DEFAULT_SETTINGS.minimum_order_cents,
        "minimum_cart_total_cents": DEFAULT_SETTINGS.minimum_cart_total_cents,
        "signup_bonus_cents": DEFAULT_SETTINGS.signup_bonus_cents,
        "referral_bonus_cents": DEFAULT_SETTINGS.referral_bonus_cents,
        "points_per_unit": DEFAULT_SETTINGS.points_per_unit,
        "redeem_rate_points": DEFAULT_SETTINGS.redeem_rate_points,
        "redeem_rate_value_cents": DEFAULT_SETTINGS.redeem_rate_value_cents,
        "accrual_delay_hours": DEFAULT_SETTINGS.accrual_delay_hours,
        "expiry_days": DEFAULT_SETTINGS.expiry_days,
    }
