# Overview: Error taxonomy shared by the ledger services and HTTP routes.

from __future__ import annotations


class LedgerError(Exception):
    """Base for every failure the ledger engine reports to callers."""

    http_status = 500
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(LedgerError, ValueError):
    """400-level input problem (empty cart, below minimum, bad amount)."""

    http_status = 400


class NotFoundError(LedgerError):
    http_status = 404


class InsufficientFundsError(LedgerError):
    """Wallet debit exceeds the balance or the capped usable amount."""

    http_status = 400

    def __init__(self, message: str, *, max_usable_cents: int):
        super().__init__(message, details={"max_usable_cents": max_usable_cents})
        self.max_usable_cents = max_usable_cents


class InsufficientPointsError(LedgerError):
    """Spendable loyalty points do not cover one redemption unit."""

    http_status = 400

    def __init__(self, message: str, *, available_points: int, required_points: int):
        super().__init__(
            message,
            details={"available_points": available_points, "required_points": required_points},
        )
        self.available_points = available_points
        self.required_points = required_points


class ConcurrencyTimeoutError(LedgerError):
    """Lock wait or transaction timeout. Safe for the caller to retry."""

    http_status = 409
    retryable = True


class PersistenceError(LedgerError):
    """Unexpected storage failure; the unit of work was rolled back."""

    http_status = 500
