# backend/restoledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/restoledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///restoledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Signs the short HMAC tail of generated referral codes
    REFERRAL_SECRET = os.environ.get("REFERRAL_SECRET", "referral-dev-secret")

    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "£")

    # Readiness sweep cadence (seconds)
    READY_SWEEP_INTERVAL_SECONDS = int(os.environ.get("READY_SWEEP_INTERVAL_SECONDS", "60"))

    # Lock/transaction timeout handling for ledger writes
    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))
    LEDGER_RETRY_BACKOFF = float(os.environ.get("LEDGER_RETRY_BACKOFF", "0.1"))

    # Optional "module:callable" that delivers push messages to device tokens
    PUSH_SENDER = os.environ.get("PUSH_SENDER")

    # Order numbers look like <PREFIX><restaurant letter><DDMM>-<seq>; brand
    # words are dropped from the restaurant name before taking its letter
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "CD")
    ORDER_NUMBER_BRAND_WORDS = os.environ.get("ORDER_NUMBER_BRAND_WORDS", "crispy,dosa")

    # Shared secret for admin endpoints (settings, order acceptance);
    # empty disables them
    ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN", "")
