# Overview: Flask API routes for customer signup, push tokens and cart maintenance.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_customer
from ..errors import LedgerError, ValidationError
from ..models.notifications import USER_TYPE_CUSTOMER
from ..responses import ledger_error_response, server_error_response
from ..services import cart_service, notification_service, referral_service
from ..validation import to_cents, to_int


customers_bp = Blueprint("customers", __name__, url_prefix="/api")


@customers_bp.post("/customers")
def register_customer_route():
    """
    Register a customer; an optional referral_code links the referrer.

    The signup bonus (if configured) is credited to the new wallet.
    """
    try:
        data = request.get_json(silent=True) or {}
        customer = referral_service.register_customer(
            full_name=data.get("full_name"),
            email=data.get("email"),
            mobile_number=data.get("mobile_number"),
            country_code=data.get("country_code"),
            referral_code=data.get("referral_code"),
        )
        return jsonify({"status": 1, "customer": customer.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to register customer")


@customers_bp.get("/cart")
@require_customer
def get_cart_route():
    try:
        items = cart_service.get_cart_items(g.customer_id)
        return jsonify({"status": 1, "items": [i.to_dict() for i in items]}), 200
    except Exception:
        return server_error_response("Failed to load cart")


@customers_bp.post("/cart")
@require_customer
def add_to_cart_route():
    try:
        data = request.get_json(silent=True) or {}
        if not data.get("product_name"):
            raise ValidationError("product_name is required")
        restaurant_user_id = data.get("user_id")

        item = cart_service.add_to_cart(
            g.customer_id,
            product_id=to_int(data.get("product_id"), "product_id", minimum=1),
            product_name=data["product_name"],
            unit_price_cents=to_cents(data.get("product_price"), "product_price"),
            quantity=to_int(data.get("product_quantity", 1), "product_quantity", minimum=1),
            vat_cents=to_cents(data.get("product_tax") or 0, "product_tax"),
            note=data.get("textfield"),
            restaurant_user_id=to_int(restaurant_user_id, "user_id") if restaurant_user_id is not None else None,
        )
        return jsonify({"status": 1, "item": item.to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to add to cart")


@customers_bp.delete("/cart/<int:product_id>")
@require_customer
def remove_from_cart_route(product_id: int):
    try:
        deleted = cart_service.remove_from_cart(g.customer_id, product_id)
        if not deleted:
            return jsonify({"status": 0, "message": "Item not in cart"}), 404
        return jsonify({"status": 1}), 200
    except Exception:
        return server_error_response("Failed to remove cart item")


@customers_bp.post("/push-tokens")
@require_customer
def register_push_token_route():
    """Register the device token used for order notifications."""
    try:
        data = request.get_json(silent=True) or {}
        token = str(data.get("token") or "").strip()
        if not token:
            raise ValidationError("token is required")
        notification_service.register_push_token(USER_TYPE_CUSTOMER, g.customer_id, token)
        return jsonify({"status": 1}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to register push token")
