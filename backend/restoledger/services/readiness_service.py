# Overview: Order acceptance with a ready estimate, and the periodic READY sweep.

from __future__ import annotations

import time
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import LedgerError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderStatus
from ..models.notifications import USER_TYPE_CUSTOMER
from ..time_utils import utcnow
from . import notification_service
from .concurrency import lock_for_update, run_unit_of_work


def accept_order(order_number: str, ready_in_minutes: int, *, now: datetime | None = None) -> list[Order]:
    """
    Move a PLACED order to ACCEPTED and record when it should be ready.

    The sweep picks the order up once ready_estimate_at has passed.
    """
    if isinstance(ready_in_minutes, bool) or not isinstance(ready_in_minutes, int) or ready_in_minutes <= 0:
        raise ValidationError("ready_in_minutes must be a positive integer")

    moment = now or utcnow()

    def _op():
        rows = lock_for_update(
            db.session.query(Order).filter_by(order_number=order_number).order_by(Order.id.asc())
        ).all()
        if not rows:
            raise NotFoundError(f"Order {order_number} not found")
        if any(r.status != int(OrderStatus.PLACED) for r in rows):
            raise ValidationError("Only placed orders can be accepted")

        estimate = moment + timedelta(minutes=ready_in_minutes)
        for row in rows:
            row.status = int(OrderStatus.ACCEPTED)
            row.ready_estimate_at = estimate
        return rows

    rows = run_unit_of_work(_op)

    notification_service.notify(
        USER_TYPE_CUSTOMER,
        rows[0].customer_id,
        "Order Accepted",
        f"Your order {order_number} will be ready in {ready_in_minutes} minutes",
        {"order_number": order_number, "type": "ORDER_ACCEPTED"},
    )
    return rows


def due_orders(now: datetime) -> list[tuple[str, int]]:
    """Distinct (order_number, customer_id) of accepted orders past their estimate."""
    return (
        db.session.query(Order.order_number, Order.customer_id)
        .filter(
            Order.status == int(OrderStatus.ACCEPTED),
            Order.ready_estimate_at.isnot(None),
            Order.ready_estimate_at <= now,
        )
        .distinct()
        .all()
    )


def _mark_ready(order_number: str) -> int:
    def _op():
        return (
            db.session.query(Order)
            .filter(
                Order.order_number == order_number,
                Order.status == int(OrderStatus.ACCEPTED),
            )
            .update({Order.status: int(OrderStatus.READY)}, synchronize_session=False)
        )

    return run_unit_of_work(_op)


def sweep_ready_orders(*, now: datetime | None = None) -> list[str]:
    """
    Transition due orders to READY and notify their customers.

    Each order commits on its own. The status guard on the update means an
    order already moved by an overlapping tick is skipped, never notified twice.
    """
    moment = now or utcnow()
    transitioned = []

    for order_number, customer_id in due_orders(moment):
        if not _mark_ready(order_number):
            continue

        transitioned.append(order_number)
        current_app.logger.info("Order %s is READY", order_number)

        notification_service.notify(
            USER_TYPE_CUSTOMER,
            customer_id,
            "Order Ready",
            f"Your order {order_number} is ready",
            {"order_number": order_number, "type": "ORDER_READY"},
        )

    return transitioned


def run_sweeper(*, interval_seconds: int | None = None, iterations: int | None = None, sleep=time.sleep) -> int:
    """
    Fixed-interval, single-threaded sweep loop.

    iterations=None runs until interrupted. A tick that fails on a ledger or
    database error is rolled back and logged; the loop carries on. Returns
    the number of orders transitioned across all ticks.
    """
    if interval_seconds is None:
        interval_seconds = current_app.config.get("READY_SWEEP_INTERVAL_SECONDS", 60)

    total = 0
    tick = 0
    while iterations is None or tick < iterations:
        try:
            total += len(sweep_ready_orders())
        except (LedgerError, SQLAlchemyError):
            db.session.rollback()
            current_app.logger.exception("Readiness sweep tick failed; retrying next interval")
        tick += 1
        if iterations is None or tick < iterations:
            sleep(interval_seconds)
    return total
