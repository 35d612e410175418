# Overview: Referral engine; referral codes, customer signup and the one-time referrer bonus.

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from flask import current_app

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..models import Customer, WalletTransaction
from ..models.customers import SOURCE_REFERRAL_BONUS
from . import wallet_service
from .concurrency import lock_for_update, run_unit_of_work
from .settings_service import LedgerSettings, get_settings


REFERRAL_CODE_ATTEMPTS = 10


# =============================================================================
# REFERRAL CODES
# =============================================================================

def _raw_referral_bytes() -> bytes:
    """8 random bytes followed by a 2-byte HMAC-SHA256 tag."""
    random_part = secrets.token_bytes(8)
    secret = current_app.config.get("REFERRAL_SECRET", "referral-dev-secret").encode()
    tag = hmac.new(secret, random_part, hashlib.sha256).digest()[:2]
    return random_part + tag


def format_referral_code(raw: bytes) -> str:
    compact = base64.b32encode(raw).decode("ascii").rstrip("=")[:12]
    return f"{compact[0:4]}-{compact[4:8]}-{compact[8:12]}"


def generate_referral_code() -> str:
    """Unique code shaped like XY4D-P92M-JQ8T."""
    for _ in range(REFERRAL_CODE_ATTEMPTS):
        code = format_referral_code(_raw_referral_bytes())
        taken = db.session.query(Customer.id).filter_by(referral_code=code).first()
        if not taken:
            return code
    raise PersistenceError("Unable to generate unique referral code after several tries")


def find_referrer(code: str | None) -> Customer | None:
    if code is None or not str(code).strip():
        return None
    return db.session.query(Customer).filter_by(referral_code=str(code).strip().upper()).first()


# =============================================================================
# SIGNUP
# =============================================================================

def register_customer(
    *,
    full_name: str,
    email: str | None = None,
    mobile_number: str | None = None,
    country_code: str | None = None,
    referral_code: str | None = None,
) -> Customer:
    """
    Create a customer, remember who referred them and pay the signup bonus.

    An unknown referral code is ignored rather than blocking signup.
    No money moves to the referrer here; that waits for the first order.
    """
    if not full_name or not str(full_name).strip():
        raise ValidationError("full_name is required")

    def _op():
        settings = get_settings()
        referrer = find_referrer(referral_code)

        customer = Customer(
            full_name=str(full_name).strip(),
            email=email,
            mobile_number=mobile_number,
            country_code=country_code,
            referral_code=generate_referral_code(),
            referred_by_customer_id=referrer.id if referrer else None,
            referral_bonus_awarded=False,
        )
        db.session.add(customer)
        db.session.flush()

        wallet_service.grant_signup_bonus(customer.id, settings)
        return customer

    return run_unit_of_work(_op)


# =============================================================================
# ONE-TIME REFERRAL BONUS
# =============================================================================

def pending_referrer_id(customer_id: int, settings: LedgerSettings) -> int | None:
    """
    Unlocked peek: the referrer that would be paid if an order commits now.

    Checkout uses this to lock the referrer's wallet in lock order before
    anything else; award_referral_bonus re-checks under the customer lock.
    """
    if settings.referral_bonus_cents <= 0:
        return None
    row = (
        db.session.query(Customer.referred_by_customer_id, Customer.referral_bonus_awarded)
        .filter(Customer.id == customer_id)
        .first()
    )
    if row is None or row.referred_by_customer_id is None or row.referral_bonus_awarded:
        return None
    if row.referred_by_customer_id == customer_id:
        return None
    return row.referred_by_customer_id


def award_referral_bonus(
    customer_id: int,
    settings: LedgerSettings,
    *,
    order_number: str | None = None,
) -> WalletTransaction | None:
    """
    Credit the referrer once, the first time the referred customer orders.

    referral_bonus_awarded is the idempotency guard: it is read under the
    customer row lock and set in the same transaction as the credit, so
    any number of later orders find it set and pay nothing.
    """
    customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")

    referrer_id = customer.referred_by_customer_id
    if referrer_id is None or customer.referral_bonus_awarded:
        return None
    if referrer_id == customer_id:
        return None
    if settings.referral_bonus_cents <= 0:
        return None

    description = "Referral bonus"
    if order_number:
        description = f"Referral bonus for order {order_number}"

    txn = wallet_service.credit(
        referrer_id,
        settings.referral_bonus_cents,
        source=SOURCE_REFERRAL_BONUS,
        description=description,
        order_number=order_number,
    )

    customer.referral_bonus_awarded = True
    db.session.flush()
    return txn
