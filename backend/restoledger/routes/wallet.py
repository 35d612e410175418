# Overview: Flask API routes for wallet balance and summary.

from flask import Blueprint, jsonify, g

from ..decorators import require_customer
from ..responses import money, server_error_response
from ..services import wallet_service
from ..services.settings_service import get_settings
from ..time_utils import utcnow


wallet_bp = Blueprint("wallet", __name__, url_prefix="/api/wallet")


@wallet_bp.get("")
@require_customer
def wallet_summary_route():
    """Wallet balance, referral credits, loyalty position and last 10 entries."""
    try:
        summary = wallet_service.wallet_summary(g.customer_id, get_settings(), utcnow())
        return jsonify(summary), 200
    except Exception:
        return server_error_response("Failed to load wallet summary")


@wallet_bp.get("/balance")
@require_customer
def wallet_balance_route():
    try:
        balance = wallet_service.get_balance(g.customer_id)
        return jsonify({"status": 1, "balance": money(balance), "balance_cents": balance}), 200
    except Exception:
        return server_error_response("Failed to load wallet balance")
