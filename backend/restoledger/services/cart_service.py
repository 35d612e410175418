# Overview: Cart store; pending lines read at checkout and cleared when it commits.

from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import CartItem
from .order_builder import CartLine


def get_cart_items(customer_id: int) -> list[CartItem]:
    return (
        db.session.query(CartItem)
        .filter_by(customer_id=customer_id)
        .order_by(CartItem.id.asc())
        .all()
    )


def to_cart_line(item: CartItem) -> CartLine:
    return CartLine(
        product_id=item.product_id,
        product_name=item.product_name,
        unit_price_cents=item.unit_price_cents,
        quantity=item.quantity,
        discount_cents=item.discount_cents,
        vat_cents=item.vat_cents,
    )


def get_cart_lines(customer_id: int) -> list[CartLine]:
    """Current cart in insertion order."""
    return [to_cart_line(item) for item in get_cart_items(customer_id)]


def add_to_cart(
    customer_id: int,
    *,
    product_id: int,
    product_name: str,
    unit_price_cents: int,
    quantity: int = 1,
    vat_cents: int = 0,
    discount_cents: int = 0,
    note: str | None = None,
    restaurant_user_id: int | None = None,
) -> CartItem:
    """Add a product, or bump its quantity when it is already in the cart."""
    if quantity <= 0:
        raise ValidationError("product_quantity must be positive")
    if unit_price_cents < 0:
        raise ValidationError("product_price must be >= 0")

    item = (
        db.session.query(CartItem)
        .filter_by(customer_id=customer_id, product_id=product_id)
        .first()
    )
    if item is not None:
        item.quantity += quantity
        if note and note.strip():
            item.note = note
    else:
        item = CartItem(
            customer_id=customer_id,
            restaurant_user_id=restaurant_user_id,
            product_id=product_id,
            product_name=product_name,
            unit_price_cents=unit_price_cents,
            vat_cents=vat_cents,
            discount_cents=discount_cents,
            quantity=quantity,
            note=note,
        )
        db.session.add(item)

    db.session.commit()
    return item


def remove_from_cart(customer_id: int, product_id: int) -> int:
    deleted = (
        db.session.query(CartItem)
        .filter_by(customer_id=customer_id, product_id=product_id)
        .delete()
    )
    db.session.commit()
    return deleted


def clear_cart(customer_id: int) -> int:
    """Delete every cart row. Does not commit; runs inside the checkout unit."""
    return db.session.query(CartItem).filter_by(customer_id=customer_id).delete()
