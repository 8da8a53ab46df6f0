"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — 200 once the app is serving requests
    GET /api/v1/health/live   — database, LLM provider and prompt templates
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from qa_dashboard.models import db
from qa_dashboard.models.tracking import Bug

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")


def _database_check():
    started = time.perf_counter()
    try:
        bug_count = db.session.query(db.func.count(Bug.id)).scalar()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness probe could not reach the database: %s", exc)
        return {"status": "error", "detail": str(exc)}
    return {
        "status": "ok",
        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        "bugs": bug_count,
    }


def _llm_check():
    gateway = current_app.extensions.get("llm_gateway")
    if gateway is None:
        return {"status": "missing"}
    return {"status": "ok", "provider": gateway.provider.name, "model": gateway.model}


def _prompts_check():
    registry = current_app.extensions.get("prompt_registry")
    if registry is None:
        return {"status": "missing"}
    return {"status": "ok", "templates": len(registry.list_templates())}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Per-dependency status; 503 when the database or an AI component is missing."""
    checks = {
        "database": _database_check(),
        "llm": _llm_check(),
        "prompts": _prompts_check(),
    }
    healthy = all(c["status"] == "ok" for c in checks.values())
    return jsonify({"status": "ok" if healthy else "degraded", "checks": checks}), (200 if healthy else 503)
