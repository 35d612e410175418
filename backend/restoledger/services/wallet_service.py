# Overview: Wallet engine; locked debits and credits with an append-only history.

"""
Wallet Service

INVARIANTS:
- balance_cents never drops below zero
- every balance change appends exactly one WalletTransaction whose
  balance_after_cents is the balance that change produced
- all mutations happen on a row locked with SELECT ... FOR UPDATE, so
  concurrent checkouts for one wallet serialize (no lost update, no overdraft)

credit() is not idempotent. Callers that must pay out at most once gate the
call with a persisted flag checked and set in the same transaction
(see referral_service).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientFundsError, ValidationError
from ..extensions import db
from ..models import Customer, CustomerWallet, WalletTransaction
from ..models.customers import (
    TXN_CREDIT,
    TXN_DEBIT,
    SOURCE_ORDER,
    SOURCE_REFERRAL_BONUS,
    SOURCE_SIGNUP_BONUS,
    VALID_WALLET_SOURCES,
)
from ..validation import format_money
from .concurrency import lock_for_update
from .settings_service import LedgerSettings


def _currency() -> str:
    return current_app.config.get("CURRENCY_SYMBOL", "£")


def _locked_wallet(customer_id: int) -> CustomerWallet | None:
    return lock_for_update(
        db.session.query(CustomerWallet).filter_by(customer_id=customer_id)
    ).first()


def _ensure_wallet_locked(customer_id: int) -> CustomerWallet:
    """Return the customer's locked wallet, creating it with balance 0 if absent."""
    wallet = _locked_wallet(customer_id)
    if wallet is not None:
        return wallet

    try:
        with db.session.begin_nested():
            db.session.add(CustomerWallet(customer_id=customer_id, balance_cents=0))
    except IntegrityError:
        # A concurrent transaction created it first; fall through and lock theirs
        pass

    return _locked_wallet(customer_id)


def lock_wallets(customer_ids) -> dict[int, CustomerWallet | None]:
    """Lock several wallets in ascending customer id order (the ledger lock order)."""
    return {cid: _locked_wallet(cid) for cid in sorted(set(customer_ids))}


def _append_transaction(
    *,
    customer_id: int,
    transaction_type: str,
    amount_cents: int,
    balance_after_cents: int,
    source: str,
    description: str | None,
    order_number: str | None,
    payment_request_id: str | None,
) -> WalletTransaction:
    txn = WalletTransaction(
        customer_id=customer_id,
        transaction_type=transaction_type,
        amount_cents=amount_cents,
        balance_after_cents=balance_after_cents,
        source=source,
        description=description,
        order_number=order_number,
        payment_request_id=payment_request_id,
    )
    db.session.add(txn)
    db.session.flush()  # assigns txn.id without committing
    return txn


def debit(
    customer_id: int,
    amount_cents: int,
    *,
    source: str = SOURCE_ORDER,
    description: str | None = None,
    limit_cents: int | None = None,
    order_number: str | None = None,
    payment_request_id: str | None = None,
) -> WalletTransaction:
    """
    Take amount_cents from the customer's wallet.

    limit_cents caps what may be used on top of the balance (checkout
    passes the order gross total).

    Raises:
        ValidationError: amount is not positive
        InsufficientFundsError: balance is zero or amount exceeds the
            usable maximum (reported on the error)
    """
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("Debit amount must be positive")
    if source not in VALID_WALLET_SOURCES:
        raise ValidationError(f"Invalid wallet source: {source}")

    wallet = _locked_wallet(customer_id)
    balance = wallet.balance_cents if wallet is not None else 0

    if balance <= 0:
        raise InsufficientFundsError("Wallet balance is 0", max_usable_cents=0)

    max_usable = balance if limit_cents is None else min(balance, max(0, limit_cents))
    if amount_cents > max_usable:
        raise InsufficientFundsError(
            f"You can use max {format_money(max_usable, _currency())} from wallet",
            max_usable_cents=max_usable,
        )

    new_balance = balance - amount_cents
    wallet.balance_cents = new_balance

    return _append_transaction(
        customer_id=customer_id,
        transaction_type=TXN_DEBIT,
        amount_cents=amount_cents,
        balance_after_cents=new_balance,
        source=source,
        description=description,
        order_number=order_number,
        payment_request_id=payment_request_id,
    )


def credit(
    customer_id: int,
    amount_cents: int,
    *,
    source: str,
    description: str | None = None,
    order_number: str | None = None,
    payment_request_id: str | None = None,
) -> WalletTransaction:
    """Add amount_cents to the customer's wallet, creating the wallet if needed."""
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("Credit amount must be positive")
    if source not in VALID_WALLET_SOURCES:
        raise ValidationError(f"Invalid wallet source: {source}")

    wallet = _ensure_wallet_locked(customer_id)
    new_balance = wallet.balance_cents + amount_cents
    wallet.balance_cents = new_balance

    return _append_transaction(
        customer_id=customer_id,
        transaction_type=TXN_CREDIT,
        amount_cents=amount_cents,
        balance_after_cents=new_balance,
        source=source,
        description=description,
        order_number=order_number,
        payment_request_id=payment_request_id,
    )


def grant_signup_bonus(customer_id: int, settings: LedgerSettings) -> WalletTransaction | None:
    """Credit the configured signup bonus; no-op when it is zero."""
    if settings.signup_bonus_cents <= 0:
        return None
    return credit(
        customer_id,
        settings.signup_bonus_cents,
        source=SOURCE_SIGNUP_BONUS,
        description="Signup bonus credited",
    )


# =============================================================================
# READ SIDE
# =============================================================================

def get_balance(customer_id: int) -> int:
    balance = (
        db.session.query(CustomerWallet.balance_cents)
        .filter_by(customer_id=customer_id)
        .scalar()
    )
    return balance or 0


def list_transactions(customer_id: int, limit: int = 10) -> list[WalletTransaction]:
    """Newest first."""
    return (
        db.session.query(WalletTransaction)
        .filter_by(customer_id=customer_id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
        .limit(limit)
        .all()
    )


def _history_row(txn: WalletTransaction, symbol: str) -> dict:
    is_debit = txn.transaction_type == TXN_DEBIT
    sign = "-" if is_debit else "+"
    return {
        "id": txn.id,
        "title": f"{'Debit' if is_debit else 'Credit'} : {txn.source}",
        "desc": txn.description or "",
        "date": txn.created_at.strftime("%d %b %Y") if txn.created_at else None,
        "amount": f"{sign}{format_money(txn.amount_cents, symbol)}",
        "amount_cents": txn.amount_cents if not is_debit else -txn.amount_cents,
    }


def wallet_summary(customer_id: int, settings: LedgerSettings, now) -> dict:
    """Balance, referral earnings, loyalty position and recent history."""
    from . import loyalty_service

    symbol = _currency()
    balance = get_balance(customer_id)

    referral_credits = (
        db.session.query(func.coalesce(func.sum(WalletTransaction.amount_cents), 0))
        .filter(
            WalletTransaction.customer_id == customer_id,
            WalletTransaction.transaction_type == TXN_CREDIT,
            WalletTransaction.source == SOURCE_REFERRAL_BONUS,
        )
        .scalar()
    )
    referred_users_count = (
        db.session.query(func.count(Customer.id))
        .filter(Customer.referred_by_customer_id == customer_id)
        .scalar()
    )

    spendable = loyalty_service.spendable_points(customer_id, now)
    pending = loyalty_service.pending_grants(customer_id, now)
    units = spendable // settings.redeem_rate_points if settings.redeem_rate_points > 0 else 0

    return {
        "wallet_balance_cents": balance,
        "wallet_balance": format_money(balance, symbol),
        "referral_credits_cents": int(referral_credits or 0),
        "referred_users_count": int(referred_users_count or 0),
        "loyalty_points": spendable,
        "loyalty_pending_points": sum(g.points_remaining for g in pending),
        "loyalty_pending_list": [
            {
                "id": g.id,
                "order_id": g.order_id,
                "points_remaining": g.points_remaining,
                "available_from": g.to_dict()["available_from"],
            }
            for g in pending
        ],
        "loyalty_redeem_points": settings.redeem_rate_points,
        "loyalty_redeem_value_cents": settings.redeem_rate_value_cents,
        "loyalty_available_after_hours": settings.accrual_delay_hours,
        "loyalty_redeemable_value_cents": units * settings.redeem_rate_value_cents,
        "history": [_history_row(t, symbol) for t in list_transactions(customer_id)],
    }
