# Overview: Fire-and-forget notification dispatch (inbox row + push hand-off).

"""
Notification Service

notify() never raises. The ledger operation that triggered it has already
committed; a failed inbox insert or push delivery is logged and dropped.

Push delivery is delegated to a sender callable:
    sender(tokens: list[str], title: str, body: str, data: dict) -> None
configured as PUSH_SENDER="package.module:function". Without one, pushes
are only logged.
"""

from __future__ import annotations

import importlib

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Notification, PushToken


_EXTENSION_KEY = "restoledger.push_sender"


def _resolve_sender():
    sender = current_app.extensions.get(_EXTENSION_KEY)
    if sender is not None:
        return sender

    path = current_app.config.get("PUSH_SENDER")
    if not path:
        return None
    module_name, _, attr = path.partition(":")
    sender = getattr(importlib.import_module(module_name), attr)
    current_app.extensions[_EXTENSION_KEY] = sender
    return sender


def register_push_token(user_type: str, user_id: int, token: str) -> PushToken:
    existing = (
        db.session.query(PushToken)
        .filter_by(user_type=user_type, user_id=user_id, token=token)
        .first()
    )
    if existing:
        return existing
    row = PushToken(user_type=user_type, user_id=user_id, token=token)
    db.session.add(row)
    db.session.commit()
    return row


def notify(user_type: str, user_id: int, title: str, body: str, data: dict | None = None) -> Notification | None:
    data = data or {}
    record = None

    try:
        record = Notification(
            user_type=user_type,
            user_id=user_id,
            title=title,
            body=body,
            order_number=data.get("order_number"),
            status=data.get("status") or data.get("type"),
        )
        db.session.add(record)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        record = None
        current_app.logger.exception("Notification inbox insert failed for %s %s", user_type, user_id)

    try:
        tokens = [
            t.token
            for t in db.session.query(PushToken).filter_by(user_type=user_type, user_id=user_id).all()
        ]
        if not tokens:
            return record

        sender = _resolve_sender()
        if sender is None:
            current_app.logger.info("No push sender configured; skipped push '%s' to %s %s", title, user_type, user_id)
            return record

        sender(tokens=tokens, title=title, body=body, data={k: str(v) for k, v in data.items()})
    except Exception:
        current_app.logger.exception("Push delivery failed for %s %s", user_type, user_id)

    return record
