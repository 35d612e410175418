# Overview: Request decorators for API routes.

"""
Identity is established upstream: the authentication gateway validates the
customer session and forwards the customer id in X-Customer-Id. Admin
endpoints take a shared token in X-Admin-Token.
"""

import hmac
from functools import wraps

from flask import request, jsonify, g, current_app


def require_customer(f):
    """
    Require a customer identity and expose it as g.customer_id.

    Returns 401 if the header is missing or not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-Customer-Id", "").strip()
        if not raw.isdigit() or int(raw) <= 0:
            return jsonify({"status": 0, "message": "Authentication required"}), 401

        g.customer_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the configured admin token. 403 when it does not match."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_TOKEN") or ""
        provided = request.headers.get("X-Admin-Token", "")
        if not expected or not hmac.compare_digest(expected, provided):
            return jsonify({"status": 0, "message": "Permission denied"}), 403
        return f(*args, **kwargs)

    return decorated_function
