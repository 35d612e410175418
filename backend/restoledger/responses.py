# Overview: JSON helpers shared by the API routes.

from __future__ import annotations

from flask import current_app, jsonify

from .errors import InsufficientFundsError, InsufficientPointsError, LedgerError
from .validation import cents_to_decimal


def money(cents: int) -> float:
    """Cents to a 2dp number for JSON bodies."""
    return float(cents_to_decimal(cents))


def ledger_error_response(exc: LedgerError):
    """
    Map a ledger failure to its HTTP response.

    Client errors carry the actionable message; server faults only say
    "Server error" and the detail goes to the log.
    """
    if exc.http_status >= 500:
        current_app.logger.error("Ledger fault: %s", exc, exc_info=exc)
        return jsonify({"status": 0, "message": "Server error"}), exc.http_status

    body = {"status": 0, "message": exc.message}
    if exc.retryable:
        body["retryable"] = True
    if isinstance(exc, InsufficientFundsError):
        body["max_usable"] = money(exc.max_usable_cents)
    if isinstance(exc, InsufficientPointsError):
        body["required_points"] = exc.required_points
        body["available_points"] = exc.available_points
    return jsonify(body), exc.http_status


def server_error_response(message: str):
    current_app.logger.exception(message)
    return jsonify({"status": 0, "message": "Server error"}), 500
