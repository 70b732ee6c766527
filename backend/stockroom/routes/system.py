# backend/stockroom/routes/system.py
"""
Root and health endpoints.

The root is the unauthenticated entry point: the sign-in / sign-up view.
Dashboard routes send clients back here when they have no valid session.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, SessionToken, StoredDocument
from ..services.document_store import COLLECTIONS
from stockroom.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


@system_bp.get("/")
def root():
    """Describe the sign-in view and where each form posts."""
    return {
        "view": "auth",
        "modes": ["login", "signup"],
        "endpoints": {
            "login": "/api/auth/login",
            "signup": "/api/auth/signup",
        },
        "after_login": "/dashboard/products",
    }


def check_database_health() -> dict:
    """Round-trip the database: account, live session and per-collection document counts."""
    started = time.time()
    try:
        per_collection = dict(
            db.session.query(StoredDocument.collection, db.func.count(StoredDocument.pk))
            .group_by(StoredDocument.collection)
            .all()
        )
        details = {
            "users": db.session.query(User).count(),
            "active_sessions": db.session.query(SessionToken).filter_by(is_revoked=False).count(),
            "documents": {c: per_collection.get(c, 0) for c in COLLECTIONS},
        }
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - started) * 1000, 2),
            "error": "Database error",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.time() - started) * 1000, 2),
        "details": details,
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: Database reachable
    - 503: Database unhealthy
    """
    start_time = time.time()
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
        }
    }, 200 if healthy else 503
