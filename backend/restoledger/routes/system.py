# backend/restoledger/routes/system.py
"""System health endpoint."""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health():
    """Database round trip with latency."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return jsonify({"status": "healthy", "database": {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}}), 200
    except Exception as e:
        current_app.logger.exception("Health check failed")
        return jsonify({"status": "unhealthy", "database": {"status": "unhealthy", "error": str(e)}}), 503
