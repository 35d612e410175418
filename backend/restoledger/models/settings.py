from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class BusinessSettings(db.Model):
    """
    Current business parameters for checkout, loyalty and referrals.

    A single row is maintained by admins; readers take the most recently
    saved row and work from an immutable snapshot of it.
    """
    __tablename__ = "business_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    signup_bonus_cents = db.Column(db.Integer, nullable=False, default=0)
    referral_bonus_cents = db.Column(db.Integer, nullable=False, default=0)
    minimum_order_cents = db.Column(db.Integer, nullable=False, default=0)  # loyalty accrual threshold
    minimum_cart_total_cents = db.Column(db.Integer, nullable=False, default=0)  # checkout threshold

    points_per_unit = db.Column(db.Numeric(10, 4), nullable=False, default=1)
    redeem_rate_points = db.Column(db.Integer, nullable=False, default=10)
    redeem_rate_value_cents = db.Column(db.Integer, nullable=False, default=100)
    accrual_delay_hours = db.Column(db.Integer, nullable=False, default=24)
    expiry_days = db.Column(db.Integer, nullable=False, default=30)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "signup_bonus_cents": self.signup_bonus_cents,
            "referral_bonus_cents": self.referral_bonus_cents,
            "minimum_order_cents": self.minimum_order_cents,
            "minimum_cart_total_cents": self.minimum_cart_total_cents,
            "points_per_unit": str(self.points_per_unit),
            "redeem_rate_points": self.redeem_rate_points,
            "redeem_rate_value_cents": self.redeem_rate_value_cents,
            "accrual_delay_hours": self.accrual_delay_hours,
            "expiry_days": self.expiry_days,
            "updated_at": to_utc_z(self.updated_at),
        }
