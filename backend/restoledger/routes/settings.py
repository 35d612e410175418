# Overview: Flask API routes for the business settings row.

from flask import Blueprint, request, jsonify

from ..decorators import require_admin
from ..errors import LedgerError
from ..responses import ledger_error_response, server_error_response
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_admin
def get_settings_route():
    try:
        return jsonify({"status": 1, "settings": settings_service.get_settings().to_dict()}), 200
    except Exception:
        return server_error_response("Failed to load settings")


@settings_bp.put("")
@require_admin
def save_settings_route():
    """
    Save settings. Money in major units, e.g.
    {"minimum_cart_total": "10.00", "referral_bonus": "5", "redeem_rate_points": 10}
    """
    try:
        snapshot = settings_service.save_settings(request.get_json(silent=True) or {})
        return jsonify({"status": 1, "settings": snapshot.to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        return server_error_response("Failed to save settings")
