# Overview: Prices a cart into per-line and order totals; no database access.

"""
Order Builder

MONEY RULES (all integer cents):
- line_gross = unit_price * quantity - discount + vat
- order gross total = sum of line_gross
- the wallet amount is applied in full against the first line only
- paid total (order) = max(0, gross total - wallet applied)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..errors import ValidationError
from ..validation import format_money
from .settings_service import LedgerSettings


@dataclass(frozen=True)
class CartLine:
    product_id: int
    unit_price_cents: int
    quantity: int
    discount_cents: int = 0
    vat_cents: int = 0
    product_name: str | None = None


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    gross_total_cents: int
    wallet_amount_cents: int
    paid_total_cents: int


@dataclass(frozen=True)
class OrderDraft:
    lines: tuple[PricedLine, ...]
    gross_total_cents: int
    discount_total_cents: int
    vat_total_cents: int
    wallet_applied_cents: int
    paid_total_cents: int


def line_gross_cents(line: CartLine) -> int:
    return line.unit_price_cents * line.quantity - line.discount_cents + line.vat_cents


def _validate_line(index: int, line: CartLine) -> None:
    label = f"items[{index}]"
    if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity <= 0:
        raise ValidationError(f"{label}.quantity must be a positive integer")
    if line.unit_price_cents < 0:
        raise ValidationError(f"{label}.price must be >= 0")
    if line.discount_cents < 0:
        raise ValidationError(f"{label}.discount_amount must be >= 0")
    if line.vat_cents < 0:
        raise ValidationError(f"{label}.vat must be >= 0")
    if line_gross_cents(line) < 0:
        raise ValidationError(f"{label}.discount_amount cannot exceed the line total")


def build_order(
    lines: Sequence[CartLine],
    wallet_requested_cents: int,
    settings: LedgerSettings,
    currency_symbol: str = "£",
) -> OrderDraft:
    """
    Validate a cart and compute its totals.

    Raises:
        ValidationError: empty cart, malformed line, negative wallet amount,
            or gross total under the configured minimum cart total.
    """
    if not lines:
        raise ValidationError("Items are required")

    for index, line in enumerate(lines):
        _validate_line(index, line)

    if wallet_requested_cents is None or wallet_requested_cents < 0:
        raise ValidationError("Invalid wallet amount")

    gross_total = sum(line_gross_cents(line) for line in lines)

    minimum = settings.minimum_cart_total_cents
    if minimum > 0 and gross_total < minimum:
        raise ValidationError(
            f"Minimum order amount is {format_money(minimum, currency_symbol)}",
            details={"minimum_cart_total_cents": minimum, "gross_total_cents": gross_total},
        )

    return _price(tuple(lines), gross_total, wallet_requested_cents)


def apply_wallet(draft: OrderDraft, wallet_cents: int) -> OrderDraft:
    """Re-price an already validated draft with a different wallet amount."""
    if wallet_cents == draft.wallet_applied_cents:
        return draft
    return _price(tuple(p.line for p in draft.lines), draft.gross_total_cents, wallet_cents)


def _price(lines: tuple[CartLine, ...], gross_total: int, wallet_cents: int) -> OrderDraft:
    priced = []
    for index, line in enumerate(lines):
        gross = line_gross_cents(line)
        if index == 0:
            priced.append(PricedLine(
                line=line,
                gross_total_cents=gross,
                wallet_amount_cents=wallet_cents,
                paid_total_cents=max(0, gross - wallet_cents),
            ))
        else:
            priced.append(PricedLine(
                line=line,
                gross_total_cents=gross,
                wallet_amount_cents=0,
                paid_total_cents=gross,
            ))

    return OrderDraft(
        lines=tuple(priced),
        gross_total_cents=gross_total,
        discount_total_cents=sum(line.discount_cents for line in lines),
        vat_total_cents=sum(line.vat_cents for line in lines),
        wallet_applied_cents=wallet_cents,
        paid_total_cents=max(0, gross_total - wallet_cents),
    )
