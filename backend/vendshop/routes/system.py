# backend/vendshop/routes/system.py
"""
System health endpoint.

/health runs a database check and a session table check and reports
503 when either is unhealthy.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, SessionToken, User
from vendshop.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(
            is_revoked=False
        ).count()

        now = utcnow()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(False)
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all checks healthy
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()

    all_checks = [database_health, session_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
        }
    }, http_status

