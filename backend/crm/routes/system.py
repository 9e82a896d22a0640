# backend/crm/routes/system.py
"""
System health endpoint.

Reports database connectivity plus a few counters useful when debugging a
deployment (orders, products, ledger entries, last order number).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import LedgerEntry, Order, Product
from ..services.sequence_service import current_order_number
from crm.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "orders": db.session.query(Order).count(),
            "products": db.session.query(Product).count(),
            "ledger_entries": db.session.query(LedgerEntry).count(),
            "last_order_number": current_order_number(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {
        "status": database["status"],
        "checked_at": to_utc_z(utcnow()),
        "database": database,
    }, status_code
