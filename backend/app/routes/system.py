# backend/app/routes/system.py
"""
System health endpoint.

Reports database reachability plus a few counters that show whether the
fulfillment pools are configured (approved vendors, open prime orders).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Order, Vendor
from ..services.lifecycle_service import PENDING
from ..services.vendor_service import FulfillerUnavailableError, get_approved_fulfiller
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        approved_vendors = db.session.query(Vendor).filter(Vendor.is_approved.is_(True)).count()
        open_orders = (
            db.session.query(Order)
            .filter(Order.status == PENDING, Order.assigned_vendor_id.is_(None))
            .count()
        )

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "approved_vendors": approved_vendors,
                "open_orders": open_orders,
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


def check_fulfiller_health() -> dict:
    """Regular orders cannot be placed without a resolvable SHOP fulfiller."""
    try:
        fulfiller = get_approved_fulfiller()
        return {"status": "healthy", "details": {"fulfiller_vendor_id": fulfiller.id}}
    except FulfillerUnavailableError as e:
        return {"status": "degraded", "warning": str(e)}
    except Exception:
        current_app.logger.exception("Fulfiller health check failed")
        return {"status": "unhealthy", "error": "Fulfiller lookup error"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (degraded = regular orders currently rejected)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    fulfiller_health = check_fulfiller_health()

    all_checks = [database_health, fulfiller_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "fulfiller": fulfiller_health,
        }
    }

    return response, http_status
