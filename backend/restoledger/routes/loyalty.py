# Overview: Flask API routes for loyalty redemption.

from flask import Blueprint, jsonify, g

from ..decorators import require_customer
from ..errors import LedgerError
from ..responses import ledger_error_response, money, server_error_response
from ..services import loyalty_service


loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api/loyalty")


@loyalty_bp.post("/redeem")
@require_customer
def redeem_route():
    """
    Redeem the maximum whole number of units into wallet credit.

    Returns:
        200: {"status": 1, "points_redeemed", "wallet_amount", "wallet_balance"}
        400: not enough points for one unit
    """
    try:
        result = loyalty_service.redeem_all(g.customer_id)

        return jsonify({
            "status": 1,
            "message": "Loyalty redeemed to wallet successfully",
            "points_redeemed": result.points_redeemed,
            "wallet_amount": money(result.wallet_amount_cents),
            "wallet_balance": money(result.new_balance_cents),
        }), 200

    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to redeem loyalty points")
