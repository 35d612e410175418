"""
Wallet engine tests: debits, credits, the balance_after chain and read side.
"""

from datetime import datetime

import pytest

from restoledger.errors import InsufficientFundsError, ValidationError
from restoledger.extensions import db
from restoledger.models import CustomerWallet, WalletTransaction
from restoledger.models.customers import SOURCE_ORDER, SOURCE_REFERRAL_BONUS, TXN_CREDIT, TXN_DEBIT
from restoledger.services import settings_service, wallet_service
from restoledger.services.concurrency import run_unit_of_work


NOW = datetime(2026, 3, 14, 12, 0, 0)


def _debit(customer_id, amount_cents, **kwargs):
    return run_unit_of_work(lambda: wallet_service.debit(customer_id, amount_cents, **kwargs))


class TestDebit:
    def test_debit_with_no_wallet_reports_zero_balance(self, make_customer):
        customer = make_customer()

        with pytest.raises(InsufficientFundsError) as excinfo:
            _debit(customer.id, 100)

        assert excinfo.value.message == "Wallet balance is 0"
        assert excinfo.value.max_usable_cents == 0

    def test_debit_over_balance_reports_max_usable(self, make_customer, fund_wallet):
        customer = make_customer()
        fund_wallet(customer.id, 2000)

        with pytest.raises(InsufficientFundsError) as excinfo:
            _debit(customer.id, 2500)

        assert excinfo.value.message == "You can use max £20.00 from wallet"
        assert excinfo.value.max_usable_cents == 2000
        assert wallet_service.get_balance(customer.id) == 2000

    def test_limit_caps_usable_amount(self, make_customer, fund_wallet):
        customer = make_customer()
        fund_wallet(customer.id, 5000)

        with pytest.raises(InsufficientFundsError) as excinfo:
            _debit(customer.id, 3500, limit_cents=3000)

        assert excinfo.value.max_usable_cents == 3000

    def test_debit_appends_history(self, make_customer, fund_wallet):
        customer = make_customer()
        fund_wallet(customer.id, 2000)

        txn = _debit(customer.id, 1500, source=SOURCE_ORDER, order_number="CDM1403-001")

        assert txn.transaction_type == TXN_DEBIT
        assert txn.amount_cents == 1500
        assert txn.balance_after_cents == 500
        assert txn.order_number == "CDM1403-001"
        assert wallet_service.get_balance(customer.id) == 500

    def test_debit_entire_balance(self, make_customer, fund_wallet):
        customer = make_customer()
        fund_wallet(customer.id, 700)

        _debit(customer.id, 700)

        assert wallet_service.get_balance(customer.id) == 0
        with pytest.raises(InsufficientFundsError, match="Wallet balance is 0"):
            _debit(customer.id, 1)

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount_rejected(self, make_customer, fund_wallet, amount):
        customer = make_customer()
        fund_wallet(customer.id, 1000)

        with pytest.raises(ValidationError):
            _debit(customer.id, amount)


class TestCredit:
    def test_credit_creates_wallet(self, make_customer, fund_wallet):
        customer = make_customer()
        assert db.session.query(CustomerWallet).filter_by(customer_id=customer.id).first() is None

        txn = fund_wallet(customer.id, 1234)

        assert txn.transaction_type == TXN_CREDIT
        assert txn.balance_after_cents == 1234
        assert wallet_service.get_balance(customer.id) == 1234

    def test_unknown_source_rejected(self, make_customer):
        customer = make_customer()
        with pytest.raises(ValidationError, match="Invalid wallet source"):
            run_unit_of_work(lambda: wallet_service.credit(customer.id, 100, source="GIFT"))


class TestBalanceChain:
    def test_balance_after_chain_matches_timeline(self, make_customer, fund_wallet):
        customer = make_customer()
        fund_wallet(customer.id, 1000)
        _debit(customer.id, 300)
        fund_wallet(customer.id, 250)
        _debit(customer.id, 950)

        with pytest.raises(InsufficientFundsError):
            _debit(customer.id, 1)

        history = (
            db.session.query(WalletTransaction)
            .filter_by(customer_id=customer.id)
            .order_by(WalletTransaction.id.asc())
            .all()
        )
        running = 0
        for txn in history:
            running += txn.amount_cents if txn.transaction_type == TXN_CREDIT else -txn.amount_cents
            assert txn.balance_after_cents == running
            assert running >= 0

        assert [t.balance_after_cents for t in history] == [1000, 700, 950, 0]
        assert wallet_service.get_balance(customer.id) == 0


class TestLockOrder:
    def test_lock_wallets_locks_in_ascending_id_order(self, db_session, monkeypatch):
        seen = []
        monkeypatch.setattr(wallet_service, "_locked_wallet", lambda cid: seen.append(cid))

        wallet_service.lock_wallets([42, 7, 42, 19])

        assert seen == [7, 19, 42]


class TestReadSide:
    def test_list_transactions_newest_first_with_limit(self, make_customer, fund_wallet):
        customer = make_customer()
        for amount in (100, 200, 300):
            fund_wallet(customer.id, amount)

        rows = wallet_service.list_transactions(customer.id, limit=2)

        assert [r.amount_cents for r in rows] == [300, 200]

    def test_wallet_summary(self, make_customer, fund_wallet, configure):
        configure(referral_bonus="5.00")
        referrer = make_customer("Referrer")
        make_customer("Friend", referral_code=referrer.referral_code)
        fund_wallet(referrer.id, 2500)
        run_unit_of_work(lambda: wallet_service.credit(
            referrer.id, 500, source=SOURCE_REFERRAL_BONUS, description="Referral bonus",
        ))

        summary = wallet_service.wallet_summary(referrer.id, settings_service.get_settings(), NOW)

        assert summary["wallet_balance_cents"] == 3000
        assert summary["wallet_balance"] == "£30.00"
        assert summary["referral_credits_cents"] == 500
        assert summary["referred_users_count"] == 1
        assert summary["loyalty_points"] == 0
        assert summary["history"][0]["amount"] == "+£5.00"
        assert len(summary["history"]) == 2
