"""
Loyalty engine tests: accrual windows, FIFO-by-expiry redemption planning,
and the locked redeem-to-wallet unit.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from restoledger.errors import InsufficientPointsError
from restoledger.extensions import db
from restoledger.models import LoyaltyEarning, LoyaltyRedemption, WalletTransaction
from restoledger.models.customers import SOURCE_LOYALTY_REDEEM
from restoledger.services import loyalty_service, wallet_service
from restoledger.services.loyalty_service import GrantBalance, plan_redemption
from restoledger.services.settings_service import LedgerSettings


NOW = datetime(2026, 3, 14, 12, 0, 0)


def _grant(customer_id, points, *, available_from, expires_at, remaining=None):
    earning = LoyaltyEarning(
        customer_id=customer_id,
        points_earned=points,
        points_remaining=points if remaining is None else remaining,
        available_from=available_from,
        expires_at=expires_at,
    )
    db.session.add(earning)
    db.session.commit()
    return earning


# =============================================================================
# PLANNING (pure)
# =============================================================================


class TestPlanRedemption:
    def test_fifo_by_expiry_leaves_remainder_on_latest_grant(self):
        grants = [
            GrantBalance(grant_id=1, points_remaining=4),
            GrantBalance(grant_id=2, points_remaining=3),
            GrantBalance(grant_id=3, points_remaining=5),
        ]

        plan = plan_redemption(grants, redeem_rate_points=10, redeem_rate_value_cents=100)

        assert plan.total_spendable == 12
        assert plan.units == 1
        assert plan.points_to_redeem == 10
        assert plan.wallet_credit_cents == 100
        assert [(d.grant_id, d.points) for d in plan.deductions] == [(1, 4), (2, 3), (3, 3)]

    def test_takes_maximum_whole_units(self):
        grants = [GrantBalance(grant_id=1, points_remaining=25), GrantBalance(grant_id=2, points_remaining=9)]

        plan = plan_redemption(grants, redeem_rate_points=10, redeem_rate_value_cents=150)

        assert plan.units == 3
        assert plan.points_to_redeem == 30
        assert plan.wallet_credit_cents == 450
        assert [(d.grant_id, d.points) for d in plan.deductions] == [(1, 25), (2, 5)]

    def test_untouched_grants_have_no_deduction(self):
        grants = [GrantBalance(grant_id=1, points_remaining=10), GrantBalance(grant_id=2, points_remaining=7)]

        plan = plan_redemption(grants, redeem_rate_points=10, redeem_rate_value_cents=100)

        assert [(d.grant_id, d.points) for d in plan.deductions] == [(1, 10)]

    def test_less_than_one_unit_raises(self):
        grants = [GrantBalance(grant_id=1, points_remaining=6), GrantBalance(grant_id=2, points_remaining=3)]

        with pytest.raises(InsufficientPointsError) as excinfo:
            plan_redemption(grants, redeem_rate_points=10, redeem_rate_value_cents=100)

        assert excinfo.value.required_points == 10
        assert excinfo.value.available_points == 9
        assert "Need at least 10 points" in excinfo.value.message

    def test_no_grants_raises(self):
        with pytest.raises(InsufficientPointsError):
            plan_redemption([], redeem_rate_points=10, redeem_rate_value_cents=100)


# =============================================================================
# ACCRUAL
# =============================================================================


class TestAccrue:
    def test_points_are_floored(self):
        settings = LedgerSettings(points_per_unit=Decimal("1"))
        assert loyalty_service.points_for(1999, settings) == 19

        settings = LedgerSettings(points_per_unit=Decimal("0.5"))
        assert loyalty_service.points_for(3500, settings) == 17

    def test_accrue_sets_availability_window(self, make_customer):
        customer = make_customer()
        settings = LedgerSettings(accrual_delay_hours=24, expiry_days=30)

        earning = loyalty_service.accrue(customer.id, None, 3500, settings, NOW)
        db.session.commit()

        assert earning.points_earned == 35
        assert earning.points_remaining == 35
        assert earning.available_from == NOW + timedelta(hours=24)
        assert earning.expires_at == NOW + timedelta(days=30)

    def test_below_minimum_order_grants_nothing(self, make_customer):
        customer = make_customer()
        settings = LedgerSettings(minimum_order_cents=2000)

        assert loyalty_service.accrue(customer.id, None, 1999, settings, NOW) is None
        assert db.session.query(LoyaltyEarning).count() == 0

    def test_zero_points_grants_nothing(self, make_customer):
        customer = make_customer()
        settings = LedgerSettings(points_per_unit=Decimal("0.1"))

        assert loyalty_service.accrue(customer.id, None, 900, settings, NOW) is None

    def test_pending_then_spendable(self, make_customer):
        customer = make_customer()
        loyalty_service.accrue(customer.id, None, 2000, LedgerSettings(), NOW)
        db.session.commit()

        assert loyalty_service.spendable_points(customer.id, NOW) == 0
        assert loyalty_service.pending_points(customer.id, NOW) == 20

        later = NOW + timedelta(hours=24)
        assert loyalty_service.spendable_points(customer.id, later) == 20
        assert loyalty_service.pending_points(customer.id, later) == 0

        expired = NOW + timedelta(days=30, seconds=1)
        assert loyalty_service.spendable_points(customer.id, expired) == 0


# =============================================================================
# REDEEM TO WALLET
# =============================================================================


class TestRedeemAll:
    def test_redeem_consumes_soonest_expiring_first(self, make_customer):
        customer = make_customer()
        past = NOW - timedelta(days=2)
        g1 = _grant(customer.id, 4, available_from=past, expires_at=NOW + timedelta(days=1))
        g2 = _grant(customer.id, 3, available_from=past, expires_at=NOW + timedelta(days=2))
        g3 = _grant(customer.id, 5, available_from=past, expires_at=NOW + timedelta(days=3))

        result = loyalty_service.redeem_all(customer.id, now=NOW)

        assert result.points_redeemed == 10
        assert result.wallet_amount_cents == 100
        assert result.new_balance_cents == 100

        db.session.expire_all()
        remaining = {
            e.id: e.points_remaining
            for e in db.session.query(LoyaltyEarning).filter_by(customer_id=customer.id)
        }
        assert remaining == {g1.id: 0, g2.id: 0, g3.id: 2}
        assert loyalty_service.spendable_points(customer.id, NOW) == 2

    def test_redeem_writes_linked_wallet_credit_and_record(self, make_customer):
        customer = make_customer()
        _grant(customer.id, 25, available_from=NOW - timedelta(hours=1), expires_at=NOW + timedelta(days=5))

        result = loyalty_service.redeem_all(customer.id, now=NOW)

        txn = db.session.get(WalletTransaction, result.wallet_transaction_id)
        redemption = db.session.get(LoyaltyRedemption, result.redemption_id)
        assert txn.source == SOURCE_LOYALTY_REDEEM
        assert txn.amount_cents == 200
        assert redemption.points_redeemed == 20
        assert redemption.wallet_amount_cents == 200
        assert redemption.wallet_transaction_id == txn.id
        assert wallet_service.get_balance(customer.id) == 200

    def test_pending_and_expired_grants_are_ignored(self, make_customer):
        customer = make_customer()
        _grant(customer.id, 50, available_from=NOW + timedelta(hours=3), expires_at=NOW + timedelta(days=5))
        _grant(customer.id, 50, available_from=NOW - timedelta(days=40), expires_at=NOW - timedelta(days=10))
        _grant(customer.id, 8, available_from=NOW - timedelta(hours=1), expires_at=NOW + timedelta(days=5))

        with pytest.raises(InsufficientPointsError) as excinfo:
            loyalty_service.redeem_all(customer.id, now=NOW)

        assert excinfo.value.available_points == 8
        assert wallet_service.get_balance(customer.id) == 0
        assert db.session.query(LoyaltyRedemption).count() == 0

    def test_failed_redeem_leaves_grants_untouched(self, make_customer, monkeypatch):
        customer = make_customer()
        grant = _grant(customer.id, 30, available_from=NOW - timedelta(hours=1), expires_at=NOW + timedelta(days=5))

        def _boom(*args, **kwargs):
            raise RuntimeError("wallet unavailable")

        monkeypatch.setattr(wallet_service, "credit", _boom)

        with pytest.raises(RuntimeError):
            loyalty_service.redeem_all(customer.id, now=NOW)

        db.session.expire_all()
        assert db.session.get(LoyaltyEarning, grant.id).points_remaining == 30

    def test_repeat_redeem_only_uses_what_is_left(self, make_customer):
        customer = make_customer()
        _grant(customer.id, 15, available_from=NOW - timedelta(hours=1), expires_at=NOW + timedelta(days=5))

        loyalty_service.redeem_all(customer.id, now=NOW)

        with pytest.raises(InsufficientPointsError):
            loyalty_service.redeem_all(customer.id, now=NOW)
        assert loyalty_service.spendable_points(customer.id, NOW) == 5
