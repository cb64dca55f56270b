"""
Health check blueprint.

Endpoints:
    GET /api/health/ready : simple 200 for load balancers
    GET /api/health/live  : database probe plus upload folder check
"""

import logging
import os
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from dealroom.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe: always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except SQLAlchemyError as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check database probe failed: %s", exc)

    # ── Upload folder (created lazily on first photo upload) ─────────
    upload_folder = current_app.config.get("UPLOAD_FOLDER", "")
    if os.path.isdir(upload_folder):
        writable = os.access(upload_folder, os.W_OK)
        checks["uploads"] = {"status": "ok" if writable else "read_only"}
    else:
        checks["uploads"] = {"status": "not_created"}

    checks["app"] = {
        "name": "Deal Room Back Office",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
