# backend/poscore/routes/system.py
"""System health endpoint."""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Product, Sale, CashClosure
from poscore.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        sale_count = db.session.query(Sale).count()
        closure_count = db.session.query(CashClosure).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "sales": sale_count,
                "closures": closure_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), status_code
