from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


USER_TYPE_CUSTOMER = "customer"
USER_TYPE_RESTAURANT = "restaurant"


class Notification(db.Model):
    """Inbox copy of every notification dispatched to a user."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user", "user_type", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_type = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.Integer, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=True)
    order_number = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(32), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_type": self.user_type,
            "user_id": self.user_id,
            "title": self.title,
            "body": self.body,
            "order_number": self.order_number,
            "status": self.status,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }


class PushToken(db.Model):
    """Device push token registered by a customer or restaurant app."""
    __tablename__ = "push_tokens"
    __table_args__ = (
        db.UniqueConstraint("user_type", "user_id", "token", name="uq_push_tokens_user_token"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_type = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    token = db.Column(db.String(512), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
