from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TXN_CREDIT = "CREDIT"
TXN_DEBIT = "DEBIT"

SOURCE_ORDER = "ORDER"
SOURCE_SIGNUP_BONUS = "SIGNUP_BONUS"
SOURCE_REFERRAL_BONUS = "REFERRAL_BONUS"
SOURCE_LOYALTY_REDEEM = "LOYALTY_REDEEM"
SOURCE_ADJUSTMENT = "ADJUSTMENT"

VALID_WALLET_SOURCES = {
    SOURCE_ORDER,
    SOURCE_SIGNUP_BONUS,
    SOURCE_REFERRAL_BONUS,
    SOURCE_LOYALTY_REDEEM,
    SOURCE_ADJUSTMENT,
}


class Customer(db.Model):
    """
    App customer placing orders.

    REFERRALS: referred_by_customer_id is set once at signup from the
    referral code the customer entered. referral_bonus_awarded flips to
    True exactly once, in the same transaction that credits the referrer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("referral_code", name="uq_customers_referral_code"),
        db.Index("ix_customers_referred_by", "referred_by_customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    country_code = db.Column(db.String(8), nullable=True)
    mobile_number = db.Column(db.String(32), nullable=True, index=True)

    referral_code = db.Column(db.String(16), nullable=False)
    referred_by_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    referral_bonus_awarded = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    referred_by = db.relationship("Customer", remote_side=[id], backref=db.backref("referrals", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "country_code": self.country_code,
            "mobile_number": self.mobile_number,
            "referral_code": self.referral_code,
            "referred_by_customer_id": self.referred_by_customer_id,
            "referral_bonus_awarded": self.referral_bonus_awarded,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerWallet(db.Model):
    """
    Stored-value balance, one per customer.

    Created lazily on the first credit and never deleted.
    Only wallet_service mutates balance_cents, always under a row lock.
    """
    __tablename__ = "customer_wallets"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_customer_wallets_customer"),
        db.CheckConstraint("balance_cents >= 0", name="ck_customer_wallets_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("wallet", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class WalletTransaction(db.Model):
    """
    Append-only history of wallet balance changes.

    IMMUTABLE: Records are never updated or deleted.
    balance_after_cents is the balance right after this entry, written
    from the value computed under the wallet lock.
    """
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        db.Index("ix_wallet_txns_customer_created", "customer_id", "created_at"),
        db.CheckConstraint("amount_cents > 0", name="ck_wallet_txns_amount_positive"),
        db.CheckConstraint("balance_after_cents >= 0", name="ck_wallet_txns_balance_after_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(8), nullable=False, index=True)  # CREDIT, DEBIT
    amount_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(32), nullable=False, index=True)

    order_number = db.Column(db.String(32), nullable=True, index=True)
    payment_request_id = db.Column(db.String(128), nullable=True)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("wallet_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "transaction_type": self.transaction_type,
            "amount_cents": self.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "source": self.source,
            "order_number": self.order_number,
            "payment_request_id": self.payment_request_id,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
