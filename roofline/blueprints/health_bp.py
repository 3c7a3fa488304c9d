"""
Health check blueprint.

Endpoints:
    GET /api/health        simple 200 for load balancers
    GET /api/health/live   database check
"""

import logging
import time

from flask import Blueprint, jsonify

from roofline.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Readiness probe. Always 200 if the app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with database status."""
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except Exception as exc:
        logger.error("Health check: database failed: %s", exc)
        return jsonify({"status": "degraded", "checks": {"database": {"status": "error"}}}), 503
    return jsonify({
        "status": "ok",
        "checks": {"database": {"status": "ok", "latency_ms": round(db_ms, 1)}},
    }), 200
