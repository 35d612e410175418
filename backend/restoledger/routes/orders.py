# Overview: Flask API routes for checkout and order acceptance.

"""
Order API Routes

- POST /api/orders                          place an order (checkout)
- POST /api/orders/<order_number>/accept    restaurant accepts with a ready estimate
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_admin, require_customer
from ..errors import LedgerError, ValidationError
from ..responses import ledger_error_response, money, server_error_response
from ..services import checkout_service, readiness_service
from ..services.checkout_service import PaymentMeta
from ..services.order_builder import CartLine
from ..validation import to_cents, to_int


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _parse_items(items) -> list[CartLine]:
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        lines.append(CartLine(
            product_id=to_int(item.get("product_id"), f"items[{index}].product_id", minimum=1),
            product_name=item.get("product_name"),
            unit_price_cents=to_cents(item.get("price"), f"items[{index}].price"),
            quantity=to_int(item.get("quantity"), f"items[{index}].quantity", minimum=1),
            discount_cents=to_cents(item.get("discount_amount") or 0, f"items[{index}].discount_amount"),
            vat_cents=to_cents(item.get("vat") or 0, f"items[{index}].vat"),
        ))
    return lines


def _parse_payment(data: dict) -> PaymentMeta:
    restaurant_user_id = data.get("user_id")
    return PaymentMeta(
        payment_mode=data.get("payment_mode"),
        payment_request_id=data.get("payment_request_id") or None,
        restaurant_user_id=to_int(restaurant_user_id, "user_id") if restaurant_user_id is not None else None,
        restaurant_name=data.get("restaurant_name"),
        instore=bool(data.get("instore")),
        allergy_note=data.get("allergy_note"),
        car_color=data.get("car_color"),
        reg_number=data.get("reg_number"),
        owner_name=data.get("owner_name"),
        mobile_number=data.get("mobile_number"),
    )


@orders_bp.post("")
@require_customer
def place_order_route():
    """
    Place an order.

    Request body:
    {
        "items": [{"product_id": 1, "product_name": "Masala Dosa",
                   "price": "9.50", "quantity": 2, "discount_amount": "0", "vat": "0"}],
        "wallet_used": "5.00",            (optional)
        "payment_mode": "card",           (optional)
        "payment_request_id": "pi_123",   (optional)
        "user_id": 7, "restaurant_name": "...", "instore": 0, "allergy_note": "..."
    }
    When "items" is omitted the customer's saved cart is used.

    Returns:
        200: {"status": 1, "order_number": ..., "wallet_used": ...}
        400: validation or wallet funds error (with max_usable)
        409: ledger busy, retry
        500: server error
    """
    try:
        data = request.get_json(silent=True) or {}

        lines = _parse_items(data["items"]) if "items" in data else None
        wallet_raw = data.get("wallet_used")
        wallet_cents = to_cents(wallet_raw, "wallet_used") if wallet_raw not in (None, "") else 0

        result = checkout_service.place_order(
            g.customer_id,
            lines=lines,
            wallet_requested_cents=wallet_cents,
            payment=_parse_payment(data),
        )

        return jsonify({
            "status": 1,
            "message": "Order Placed Successfully",
            "order_number": result.order_number,
            "wallet_used": money(result.wallet_used_cents),
            "paid_total": money(result.paid_total_cents),
            "points_earned": result.points_earned,
        }), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to place order")


@orders_bp.post("/<order_number>/accept")
@require_admin
def accept_order_route(order_number: str):
    """
    Accept an order and set its ready estimate.

    Request body: {"ready_in_minutes": 15}
    """
    try:
        data = request.get_json(silent=True) or {}
        minutes = to_int(data.get("ready_in_minutes"), "ready_in_minutes", minimum=1)

        rows = readiness_service.accept_order(order_number, minutes)

        return jsonify({
            "status": 1,
            "order_number": order_number,
            "ready_estimate_at": rows[0].to_dict()["ready_estimate_at"],
        }), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to accept order")
