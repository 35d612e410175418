from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class LoyaltyEarning(db.Model):
    """
    A time-windowed batch of points earned from one paid order.

    Spendable while available_from <= now <= expires_at and
    points_remaining > 0. points_remaining only ever decreases.
    Expired grants are kept; reads simply filter them out.
    """
    __tablename__ = "loyalty_earnings"
    __table_args__ = (
        db.Index("ix_loyalty_earnings_customer_expires", "customer_id", "expires_at"),
        db.CheckConstraint("points_earned > 0", name="ck_loyalty_earnings_points_positive"),
        db.CheckConstraint(
            "points_remaining >= 0 AND points_remaining <= points_earned",
            name="ck_loyalty_earnings_remaining_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    points_earned = db.Column(db.Integer, nullable=False)
    points_remaining = db.Column(db.Integer, nullable=False)

    available_from = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("loyalty_earnings", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "order_id": self.order_id,
            "points_earned": self.points_earned,
            "points_remaining": self.points_remaining,
            "available_from": to_utc_z(self.available_from),
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
        }


class LoyaltyRedemption(db.Model):
    """Immutable record of one points-to-wallet conversion."""
    __tablename__ = "loyalty_redemptions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    points_redeemed = db.Column(db.Integer, nullable=False)
    wallet_amount_cents = db.Column(db.Integer, nullable=False)
    wallet_transaction_id = db.Column(db.Integer, db.ForeignKey("wallet_transactions.id"), nullable=False, unique=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    wallet_transaction = db.relationship("WalletTransaction")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "points_redeemed": self.points_redeemed,
            "wallet_amount_cents": self.wallet_amount_cents,
            "wallet_transaction_id": self.wallet_transaction_id,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
