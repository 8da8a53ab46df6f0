"""
QA Bug Dashboard
Flask Application Factory.

Usage:
    from qa_dashboard import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from qa_dashboard.config import config
from qa_dashboard.models import db
from qa_dashboard.auth import init_auth
from qa_dashboard.core.exceptions import AIServiceError, NotFoundError, ValidationError
from qa_dashboard.middleware.logging_config import configure_logging
from qa_dashboard.middleware.timing import init_request_timing
from qa_dashboard.models.ai import AIUsageLog
from qa_dashboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, AI blueprint sets its own
)


def _register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        logger.info("Not found: %s", e)
        return {"error": f"{e.resource} not found"}, 404

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        body = {"error": str(e)}
        if e.details:
            body["details"] = e.details
        return body, 400

    @app.errorhandler(AIServiceError)
    def _ai_service_error(e):
        db.session.rollback()
        if e.usage:
            # keep the failed call in the usage log, nothing else from the request
            db.session.add(AIUsageLog(**e.usage))
            db_commit_or_error()
        return {"error": "AI service unavailable", "detail": str(e)}, 502

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing (before auth so rejected requests are timed too) ──
    init_request_timing(app)

    # ── Authentication ───────────────────────────────────────────────────
    init_auth(app)

    # ── AI collaborators: one explicit gateway per app ───────────────────
    from qa_dashboard.ai.gateway import LLMGateway
    from qa_dashboard.ai.prompt_registry import PromptRegistry

    app.extensions["llm_gateway"] = LLMGateway.from_config(app.config)
    app.extensions["prompt_registry"] = PromptRegistry()

    # ── Import all models so Alembic / create_all can see them ───────────
    from qa_dashboard.models import tracking as _tracking_models  # noqa: F401
    from qa_dashboard.models import ai as _ai_models              # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite:///") \
            and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()
        app.logger.debug("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from qa_dashboard.blueprints.bugs_bp import bugs_bp
    from qa_dashboard.blueprints.test_cases_bp import test_cases_bp
    from qa_dashboard.blueprints.reports_bp import reports_bp
    from qa_dashboard.blueprints.ai_bp import ai_bp
    from qa_dashboard.blueprints.export_bp import export_bp
    from qa_dashboard.blueprints.health_bp import health_bp

    app.register_blueprint(bugs_bp)
    app.register_blueprint(test_cases_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(health_bp)

    # ── Health check (short form; detailed version at /health/live) ──────
    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "QA Bug Dashboard"}

    _register_error_handlers(app)

    return app
