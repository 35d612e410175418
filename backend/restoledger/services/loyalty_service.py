# Overview: Loyalty engine; delayed, expiring point grants and FIFO-by-expiry redemption.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from typing import Sequence

from flask import current_app
from sqlalchemy import func

from ..errors import InsufficientPointsError, ValidationError
from ..extensions import db
from ..models import LoyaltyEarning, LoyaltyRedemption
from ..models.customers import SOURCE_LOYALTY_REDEEM
from ..time_utils import days_after, hours_after, utcnow
from ..validation import format_money
from . import wallet_service
from .concurrency import lock_for_update, run_unit_of_work
from .settings_service import LedgerSettings, get_settings


@dataclass(frozen=True)
class GrantBalance:
    grant_id: int
    points_remaining: int


@dataclass(frozen=True)
class Deduction:
    grant_id: int
    points: int


@dataclass(frozen=True)
class RedemptionPlan:
    total_spendable: int
    units: int
    points_to_redeem: int
    wallet_credit_cents: int
    deductions: tuple[Deduction, ...]


@dataclass(frozen=True)
class RedemptionResult:
    points_redeemed: int
    wallet_amount_cents: int
    new_balance_cents: int
    redemption_id: int
    wallet_transaction_id: int

    def to_dict(self) -> dict:
        return {
            "points_redeemed": self.points_redeemed,
            "wallet_amount_cents": self.wallet_amount_cents,
            "new_wallet_balance_cents": self.new_balance_cents,
            "redemption_id": self.redemption_id,
            "wallet_transaction_id": self.wallet_transaction_id,
        }


# =============================================================================
# ACCRUAL
# =============================================================================

def points_for(paid_total_cents: int, settings: LedgerSettings) -> int:
    """floor(paid total in major units * points_per_unit)."""
    units = Decimal(paid_total_cents) / 100
    return int((units * settings.points_per_unit).to_integral_value(rounding=ROUND_FLOOR))


def accrue(
    customer_id: int,
    order_id: int,
    paid_total_cents: int,
    settings: LedgerSettings,
    now: datetime,
) -> LoyaltyEarning | None:
    """
    Grant points for a paid order.

    Nothing is granted under minimum_order or when the computed points
    round down to zero. The grant becomes spendable accrual_delay_hours
    from now and expires expiry_days from now.
    """
    if paid_total_cents < settings.minimum_order_cents:
        return None

    points = points_for(paid_total_cents, settings)
    if points <= 0:
        return None

    earning = LoyaltyEarning(
        customer_id=customer_id,
        order_id=order_id,
        points_earned=points,
        points_remaining=points,
        available_from=hours_after(now, settings.accrual_delay_hours),
        expires_at=days_after(now, settings.expiry_days),
    )
    db.session.add(earning)
    db.session.flush()
    return earning


# =============================================================================
# REDEMPTION
# =============================================================================

def plan_redemption(
    grants: Sequence[GrantBalance],
    redeem_rate_points: int,
    redeem_rate_value_cents: int,
) -> RedemptionPlan:
    """
    Decide how many whole units to redeem and which grants pay for them.

    grants must already be ordered soonest-expiring first. The maximum
    whole number of units is always taken; points are consumed from the
    front of the list, a grant may be partially consumed, and whatever
    is left stays on the later grants.
    """
    if redeem_rate_points <= 0:
        raise ValidationError("Redeem rate must be at least 1 point")

    total = sum(g.points_remaining for g in grants)
    units = total // redeem_rate_points
    if units <= 0:
        raise InsufficientPointsError(
            f"Not enough loyalty points to redeem. Need at least {redeem_rate_points} points.",
            available_points=total,
            required_points=redeem_rate_points,
        )

    points_to_redeem = units * redeem_rate_points
    remaining = points_to_redeem
    deductions = []
    for grant in grants:
        if remaining <= 0:
            break
        take = min(grant.points_remaining, remaining)
        if take > 0:
            deductions.append(Deduction(grant_id=grant.grant_id, points=take))
            remaining -= take

    return RedemptionPlan(
        total_spendable=total,
        units=units,
        points_to_redeem=points_to_redeem,
        wallet_credit_cents=units * redeem_rate_value_cents,
        deductions=tuple(deductions),
    )


def _spendable_filter(query, customer_id: int, now: datetime):
    return query.filter(
        LoyaltyEarning.customer_id == customer_id,
        LoyaltyEarning.available_from <= now,
        LoyaltyEarning.expires_at >= now,
        LoyaltyEarning.points_remaining > 0,
    )


def _redeem_all_locked(customer_id: int, settings: LedgerSettings, now: datetime) -> RedemptionResult:
    # Lock order: wallet, then loyalty rows
    wallet_service.lock_wallets([customer_id])

    rows = lock_for_update(
        _spendable_filter(db.session.query(LoyaltyEarning), customer_id, now)
        .order_by(LoyaltyEarning.expires_at.asc(), LoyaltyEarning.id.asc())
    ).all()

    plan = plan_redemption(
        [GrantBalance(grant_id=r.id, points_remaining=r.points_remaining) for r in rows],
        settings.redeem_rate_points,
        settings.redeem_rate_value_cents,
    )

    by_id = {r.id: r for r in rows}
    for deduction in plan.deductions:
        by_id[deduction.grant_id].points_remaining -= deduction.points

    symbol = current_app.config.get("CURRENCY_SYMBOL", "£")
    txn = wallet_service.credit(
        customer_id,
        plan.wallet_credit_cents,
        source=SOURCE_LOYALTY_REDEEM,
        description=f"Redeemed {plan.points_to_redeem} points to wallet",
    )

    redemption = LoyaltyRedemption(
        customer_id=customer_id,
        points_redeemed=plan.points_to_redeem,
        wallet_amount_cents=plan.wallet_credit_cents,
        wallet_transaction_id=txn.id,
        note=f"Redeem {plan.points_to_redeem} pts = {format_money(plan.wallet_credit_cents, symbol)}",
    )
    db.session.add(redemption)
    db.session.flush()

    return RedemptionResult(
        points_redeemed=plan.points_to_redeem,
        wallet_amount_cents=plan.wallet_credit_cents,
        new_balance_cents=txn.balance_after_cents,
        redemption_id=redemption.id,
        wallet_transaction_id=txn.id,
    )


def redeem_all(customer_id: int, *, now: datetime | None = None) -> RedemptionResult:
    """
    Convert the maximum whole number of redemption units into wallet credit.

    One atomic unit: grant deductions, the wallet credit and the redemption
    record commit together or not at all.

    Raises:
        InsufficientPointsError: spendable points cover less than one unit
        ConcurrencyTimeoutError: lock wait exhausted its retries
    """
    def _op():
        settings = get_settings()
        return _redeem_all_locked(customer_id, settings, now or utcnow())

    return run_unit_of_work(_op)


# =============================================================================
# READ SIDE
# =============================================================================

def spendable_points(customer_id: int, now: datetime) -> int:
    total = _spendable_filter(
        db.session.query(func.coalesce(func.sum(LoyaltyEarning.points_remaining), 0)),
        customer_id,
        now,
    ).scalar()
    return int(total or 0)


def pending_grants(customer_id: int, now: datetime) -> list[LoyaltyEarning]:
    """Earned but not yet available, soonest available first."""
    return (
        db.session.query(LoyaltyEarning)
        .filter(
            LoyaltyEarning.customer_id == customer_id,
            LoyaltyEarning.available_from > now,
            LoyaltyEarning.expires_at >= now,
            LoyaltyEarning.points_remaining > 0,
        )
        .order_by(LoyaltyEarning.available_from.asc())
        .all()
    )


def pending_points(customer_id: int, now: datetime) -> int:
    return sum(g.points_remaining for g in pending_grants(customer_id, now))
