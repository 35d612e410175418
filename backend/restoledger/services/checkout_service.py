# Overview: Checkout orchestration; one atomic unit from cart validation to referral award.

"""
Checkout Service

STATE MACHINE (per checkout):
    VALIDATING -> DEBITING_WALLET (only when wallet is used) -> PERSISTING_ORDER
    -> ACCRUING_LOYALTY -> AWARDING_REFERRAL -> COMMITTED
Any failure leads to ABORTED and the whole transaction is rolled back:
wallet debit, order rows, loyalty grant, referral award and cart clear.
Callers only ever see COMMITTED or ABORTED.

LOCKS (see concurrency.py for the global order):
    wallets of the customer and of a pending referrer (ascending id)
    -> customer row (inside award_referral_bonus)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from flask import current_app

from ..errors import LedgerError, NotFoundError
from ..extensions import db
from ..models import Customer, Order, OrderPaymentHistory, OrderStatus
from ..models.customers import SOURCE_ORDER
from ..time_utils import utcnow
from . import cart_service, loyalty_service, referral_service, wallet_service
from .concurrency import run_unit_of_work
from .order_builder import CartLine, build_order
from .order_number_service import next_order_number
from .settings_service import get_settings


class CheckoutState(str, enum.Enum):
    VALIDATING = "VALIDATING"
    DEBITING_WALLET = "DEBITING_WALLET"
    PERSISTING_ORDER = "PERSISTING_ORDER"
    ACCRUING_LOYALTY = "ACCRUING_LOYALTY"
    AWARDING_REFERRAL = "AWARDING_REFERRAL"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class PaymentMeta:
    payment_mode: str | None = None
    payment_request_id: str | None = None
    restaurant_user_id: int | None = None
    restaurant_name: str | None = None
    instore: bool = False
    allergy_note: str | None = None
    car_color: str | None = None
    reg_number: str | None = None
    owner_name: str | None = None
    mobile_number: str | None = None


@dataclass(frozen=True)
class CheckoutResult:
    order_number: str
    wallet_used_cents: int
    gross_total_cents: int
    paid_total_cents: int
    points_earned: int
    referral_awarded: bool
    order_ids: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "order_number": self.order_number,
            "wallet_used_cents": self.wallet_used_cents,
            "gross_total_cents": self.gross_total_cents,
            "paid_total_cents": self.paid_total_cents,
            "points_earned": self.points_earned,
            "referral_awarded": self.referral_awarded,
            "order_ids": list(self.order_ids),
        }


class _Progress:
    """Tracks the state reached so an abort can be reported precisely."""

    def __init__(self):
        self.state = CheckoutState.VALIDATING

    def advance(self, state: CheckoutState) -> None:
        self.state = state


def place_order(
    customer_id: int,
    *,
    lines: Sequence[CartLine] | None = None,
    wallet_requested_cents: int = 0,
    payment: PaymentMeta | None = None,
    now: datetime | None = None,
) -> CheckoutResult:
    """
    Place an order for the customer's cart.

    Args:
        customer_id: Customer checking out
        lines: Cart lines; read from the cart store when omitted
        wallet_requested_cents: Wallet amount to apply (0 for none)
        payment: Payment and collection metadata
        now: Business time (defaults to utcnow)

    Returns:
        CheckoutResult with the order number and wallet amount used

    Raises:
        ValidationError: empty cart, bad line, below minimum, bad wallet amount
        InsufficientFundsError: wallet cannot cover the requested amount
        ConcurrencyTimeoutError: lock wait exhausted its retries
        PersistenceError: unexpected storage failure
    """
    payment = payment or PaymentMeta()
    symbol = current_app.config.get("CURRENCY_SYMBOL", "£")
    progress = _Progress()

    def _op() -> CheckoutResult:
        progress.advance(CheckoutState.VALIDATING)
        moment = now or utcnow()
        settings = get_settings()

        customer_exists = db.session.query(Customer.id).filter_by(id=customer_id).first()
        if not customer_exists:
            raise NotFoundError(f"Customer {customer_id} not found")

        cart_lines = list(lines) if lines is not None else cart_service.get_cart_lines(customer_id)
        draft = build_order(cart_lines, wallet_requested_cents, settings, symbol)

        referrer_id = referral_service.pending_referrer_id(customer_id, settings)
        wallets_to_lock = []
        if draft.wallet_applied_cents > 0:
            wallets_to_lock.append(customer_id)
        if referrer_id is not None:
            wallets_to_lock.append(referrer_id)
        wallet_service.lock_wallets(wallets_to_lock)

        order_number = next_order_number(payment.restaurant_name, moment)

        if draft.wallet_applied_cents > 0:
            progress.advance(CheckoutState.DEBITING_WALLET)
            wallet_service.debit(
                customer_id,
                draft.wallet_applied_cents,
                source=SOURCE_ORDER,
                description=f"Wallet used for order {order_number}",
                limit_cents=draft.gross_total_cents,
                order_number=order_number,
                payment_request_id=payment.payment_request_id,
            )

        progress.advance(CheckoutState.PERSISTING_ORDER)
        rows = []
        for priced in draft.lines:
            row = Order(
                order_number=order_number,
                customer_id=customer_id,
                restaurant_user_id=payment.restaurant_user_id,
                product_id=priced.line.product_id,
                product_name=priced.line.product_name,
                unit_price_cents=priced.line.unit_price_cents,
                quantity=priced.line.quantity,
                discount_cents=priced.line.discount_cents,
                vat_cents=priced.line.vat_cents,
                gross_total_cents=priced.gross_total_cents,
                wallet_amount_cents=priced.wallet_amount_cents,
                paid_total_cents=priced.paid_total_cents,
                status=int(OrderStatus.PLACED),
                payment_mode=payment.payment_mode,
                payment_request_id=payment.payment_request_id,
                instore=bool(payment.instore),
                allergy_note=payment.allergy_note,
                car_color=payment.car_color,
                reg_number=payment.reg_number,
                owner_name=payment.owner_name,
                mobile_number=payment.mobile_number,
            )
            db.session.add(row)
            db.session.flush()  # first row id anchors the loyalty grant
            rows.append(row)

        if payment.payment_request_id:
            db.session.add(OrderPaymentHistory(
                order_number=order_number,
                payment_request_id=payment.payment_request_id,
                amount_cents=draft.paid_total_cents,
                payment_status="success",
            ))

        progress.advance(CheckoutState.ACCRUING_LOYALTY)
        earning = loyalty_service.accrue(
            customer_id,
            rows[0].id,
            draft.paid_total_cents,
            settings,
            moment,
        )

        progress.advance(CheckoutState.AWARDING_REFERRAL)
        referral_txn = referral_service.award_referral_bonus(
            customer_id,
            settings,
            order_number=order_number,
        )

        cart_service.clear_cart(customer_id)

        return CheckoutResult(
            order_number=order_number,
            wallet_used_cents=draft.wallet_applied_cents,
            gross_total_cents=draft.gross_total_cents,
            paid_total_cents=draft.paid_total_cents,
            points_earned=earning.points_earned if earning else 0,
            referral_awarded=referral_txn is not None,
            order_ids=tuple(r.id for r in rows),
        )

    try:
        result = run_unit_of_work(_op)
    except Exception as exc:
        failed_at = progress.state
        progress.advance(CheckoutState.ABORTED)
        if isinstance(exc, LedgerError):
            current_app.logger.warning(
                "Checkout ABORTED for customer %s at %s: %s",
                customer_id, failed_at.value, exc,
            )
        else:
            current_app.logger.exception(
                "Checkout ABORTED for customer %s at %s", customer_id, failed_at.value,
            )
        raise

    progress.advance(CheckoutState.COMMITTED)
    current_app.logger.info(
        "Checkout COMMITTED order %s for customer %s (wallet %s, paid %s)",
        result.order_number, customer_id, result.wallet_used_cents, result.paid_total_cents,
    )
    return result
