# Overview: Collision-free order numbers backed by a per-prefix sequence row.

from __future__ import annotations

import re
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import OrderSequence


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def restaurant_letter(restaurant_name: str | None) -> str:
    """
    First letter of the restaurant name once brand words are removed.

    Falls back to the raw name's first character, then to "X".
    """
    name = str(restaurant_name or "")
    cleaned = name.lower()
    words = current_app.config.get("ORDER_NUMBER_BRAND_WORDS", "")
    for word in [w.strip().lower() for w in words.split(",") if w.strip()]:
        cleaned = cleaned.replace(word, " ")
    cleaned = _SPACES.sub(" ", _NON_ALNUM.sub(" ", cleaned)).strip()

    if cleaned:
        return cleaned[0].upper()
    if name.strip():
        return name.strip()[0].upper()
    return "X"


def _bump(prefix: str) -> int | None:
    stmt = (
        update(OrderSequence)
        .where(OrderSequence.prefix == prefix)
        .values(next_number=OrderSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(prefix=prefix)
        .scalar()
    )
    return current - 1


def next_order_number(restaurant_name: str | None, now: datetime) -> str:
    """
    Allocate the next order number inside the caller's transaction.

    The sequence row is created on first use; a concurrent creator is
    absorbed by a savepoint so the enclosing checkout is not rolled back.
    """
    brand = current_app.config.get("ORDER_NUMBER_PREFIX", "CD")
    prefix = f"{brand}{restaurant_letter(restaurant_name)}{now:%d%m}"

    number = _bump(prefix)
    if number is None:
        try:
            with db.session.begin_nested():
                db.session.add(OrderSequence(prefix=prefix, next_number=2))
            number = 1
        except IntegrityError:
            number = _bump(prefix)
            if number is None:
                raise

    return f"{prefix}-{number:03d}"
