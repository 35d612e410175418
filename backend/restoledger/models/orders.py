from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class OrderStatus(enum.IntEnum):
    """Order lifecycle codes shared with the restaurant dashboard."""
    PLACED = 0
    ACCEPTED = 1  # in preparation, ready_estimate_at set
    REJECTED = 2
    READY = 3
    COMPLETED = 4
    CANCELLED = 5


class Order(db.Model):
    """
    One row per cart line; rows of the same checkout share order_number.

    MONEY (cents):
    - gross_total_cents = unit_price * quantity - discount + vat
    - wallet_amount_cents is non-zero only on the first row of an order
    - paid_total_cents is what the customer paid for this row after wallet
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_order_number", "order_number"),
        db.Index("ix_orders_status_ready_estimate", "status", "ready_estimate_at"),
        db.Index("ix_orders_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    restaurant_user_id = db.Column(db.Integer, nullable=True, index=True)

    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    vat_cents = db.Column(db.Integer, nullable=False, default=0)
    gross_total_cents = db.Column(db.Integer, nullable=False)
    wallet_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.Integer, nullable=False, default=int(OrderStatus.PLACED), index=True)
    ready_estimate_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Payment metadata (gateway details live with the payment collaborator)
    payment_mode = db.Column(db.String(32), nullable=True)
    payment_request_id = db.Column(db.String(128), nullable=True)

    # Collection details
    instore = db.Column(db.Boolean, nullable=False, default=False)
    allergy_note = db.Column(db.String(500), nullable=True)
    car_color = db.Column(db.String(64), nullable=True)
    reg_number = db.Column(db.String(32), nullable=True)
    owner_name = db.Column(db.String(128), nullable=True)
    mobile_number = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "restaurant_user_id": self.restaurant_user_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "discount_cents": self.discount_cents,
            "vat_cents": self.vat_cents,
            "gross_total_cents": self.gross_total_cents,
            "wallet_amount_cents": self.wallet_amount_cents,
            "paid_total_cents": self.paid_total_cents,
            "status": self.status,
            "ready_estimate_at": to_utc_z(self.ready_estimate_at),
            "payment_mode": self.payment_mode,
            "payment_request_id": self.payment_request_id,
            "instore": self.instore,
            "allergy_note": self.allergy_note,
            "created_at": to_utc_z(self.created_at),
        }


class OrderPaymentHistory(db.Model):
    """Successful payment intents linked to an order number."""
    __tablename__ = "order_payment_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, index=True)
    payment_request_id = db.Column(db.String(128), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="success")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "payment_request_id": self.payment_request_id,
            "amount_cents": self.amount_cents,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }


class OrderSequence(db.Model):
    """
    Atomic per-prefix order number sequences.

    WHY: Two checkouts in the same minute for the same restaurant must
    not share an order number.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("prefix", name="uq_order_sequences_prefix"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class CartItem(db.Model):
    """Pending cart line; cleared when a checkout commits."""
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("customer_id", "product_id", name="uq_cart_items_customer_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    restaurant_user_id = db.Column(db.Integer, nullable=True)

    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    vat_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    note = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "restaurant_user_id": self.restaurant_user_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price_cents": self.unit_price_cents,
            "vat_cents": self.vat_cents,
            "discount_cents": self.discount_cents,
            "quantity": self.quantity,
            "note": self.note,
        }
