"""
Order acceptance and READY sweep tests, including notification dispatch.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from restoledger.errors import NotFoundError, ValidationError
from restoledger.extensions import db
from restoledger.models import Notification, Order, OrderStatus
from restoledger.models.notifications import USER_TYPE_CUSTOMER
from restoledger.services import checkout_service, notification_service, readiness_service
from restoledger.services.order_builder import CartLine
from restoledger.time_utils import utcnow


PUSH_SENDER_KEY = "restoledger.push_sender"


@pytest.fixture
def placed_order(make_customer):
    customer = make_customer()
    lines = [
        CartLine(product_id=1, product_name="Idli", unit_price_cents=600, quantity=2),
        CartLine(product_id=2, product_name="Chai", unit_price_cents=250, quantity=1),
    ]
    result = checkout_service.place_order(customer.id, lines=lines)
    return customer, result.order_number


def _statuses(order_number):
    db.session.expire_all()
    return {r.status for r in db.session.query(Order).filter_by(order_number=order_number)}


class TestAcceptOrder:
    def test_accept_sets_status_and_estimate_on_all_rows(self, placed_order):
        customer, order_number = placed_order
        now = utcnow()

        rows = readiness_service.accept_order(order_number, 15, now=now)

        assert len(rows) == 2
        assert _statuses(order_number) == {int(OrderStatus.ACCEPTED)}
        estimates = {r.ready_estimate_at for r in db.session.query(Order).filter_by(order_number=order_number)}
        assert estimates == {now + timedelta(minutes=15)}

        note = db.session.query(Notification).filter_by(order_number=order_number).one()
        assert note.title == "Order Accepted"
        assert note.user_type == USER_TYPE_CUSTOMER
        assert note.user_id == customer.id

    def test_accept_twice_rejected(self, placed_order):
        _, order_number = placed_order
        readiness_service.accept_order(order_number, 10)

        with pytest.raises(ValidationError):
            readiness_service.accept_order(order_number, 10)

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            readiness_service.accept_order("CDX0101-999", 10)

    @pytest.mark.parametrize("minutes", [0, -5, True])
    def test_bad_minutes(self, placed_order, minutes):
        _, order_number = placed_order
        with pytest.raises(ValidationError):
            readiness_service.accept_order(order_number, minutes)


class TestSweep:
    def test_nothing_due_before_estimate(self, placed_order):
        _, order_number = placed_order
        now = utcnow()
        readiness_service.accept_order(order_number, 30, now=now)

        assert readiness_service.sweep_ready_orders(now=now + timedelta(minutes=29)) == []
        assert _statuses(order_number) == {int(OrderStatus.ACCEPTED)}

    def test_due_order_becomes_ready_once(self, placed_order):
        customer, order_number = placed_order
        now = utcnow()
        readiness_service.accept_order(order_number, 30, now=now)

        first = readiness_service.sweep_ready_orders(now=now + timedelta(minutes=30))
        second = readiness_service.sweep_ready_orders(now=now + timedelta(minutes=31))

        assert first == [order_number]
        assert second == []
        assert _statuses(order_number) == {int(OrderStatus.READY)}

        ready_notes = db.session.query(Notification).filter_by(title="Order Ready").all()
        assert len(ready_notes) == 1
        assert ready_notes[0].user_id == customer.id

    def test_placed_orders_are_not_swept(self, placed_order):
        _, order_number = placed_order

        assert readiness_service.sweep_ready_orders(now=utcnow() + timedelta(days=1)) == []
        assert _statuses(order_number) == {int(OrderStatus.PLACED)}

    def test_push_sender_receives_tokens(self, app, placed_order, monkeypatch):
        customer, order_number = placed_order
        sent = []
        monkeypatch.setitem(app.extensions, PUSH_SENDER_KEY, lambda **kwargs: sent.append(kwargs))
        notification_service.register_push_token(USER_TYPE_CUSTOMER, customer.id, "device-token-1")
        now = utcnow()
        readiness_service.accept_order(order_number, 5, now=now)
        sent.clear()

        readiness_service.sweep_ready_orders(now=now + timedelta(minutes=5))

        assert len(sent) == 1
        assert sent[0]["tokens"] == ["device-token-1"]
        assert sent[0]["title"] == "Order Ready"
        assert sent[0]["data"]["order_number"] == order_number

    def test_push_failure_does_not_undo_transition(self, app, placed_order, monkeypatch):
        customer, order_number = placed_order

        def _broken_sender(**kwargs):
            raise ConnectionError("push gateway down")

        monkeypatch.setitem(app.extensions, PUSH_SENDER_KEY, _broken_sender)
        notification_service.register_push_token(USER_TYPE_CUSTOMER, customer.id, "device-token-1")
        now = utcnow()
        readiness_service.accept_order(order_number, 5, now=now)

        assert readiness_service.sweep_ready_orders(now=now + timedelta(minutes=5)) == [order_number]
        assert _statuses(order_number) == {int(OrderStatus.READY)}


class TestRunSweeper:
    def test_fixed_interval_loop(self, placed_order):
        _, order_number = placed_order
        readiness_service.accept_order(order_number, 1, now=utcnow() - timedelta(minutes=5))
        sleeps = []

        total = readiness_service.run_sweeper(interval_seconds=7, iterations=3, sleep=sleeps.append)

        assert total == 1
        assert sleeps == [7, 7]
        assert _statuses(order_number) == {int(OrderStatus.READY)}

    def test_database_error_does_not_stop_the_loop(self, placed_order, monkeypatch):
        _, order_number = placed_order
        readiness_service.accept_order(order_number, 1, now=utcnow() - timedelta(minutes=5))
        original = readiness_service.due_orders
        calls = {"n": 0}

        def _flaky(now):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("SELECT orders", {}, Exception("server closed the connection unexpectedly"))
            return original(now)

        monkeypatch.setattr(readiness_service, "due_orders", _flaky)

        total = readiness_service.run_sweeper(interval_seconds=0, iterations=3, sleep=lambda _: None)

        assert calls["n"] == 3
        assert total == 1
        assert _statuses(order_number) == {int(OrderStatus.READY)}
