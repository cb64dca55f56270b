"""
Deal Room Back Office
Flask Application Factory.

Usage:
    from dealroom import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from dealroom.config import config
from dealroom.models import db
from dealroom.middleware.logging_config import configure_logging
from dealroom.middleware.rate_limiter import init_rate_limits
from dealroom.middleware.security_headers import init_security_headers
from dealroom.middleware.timing import init_request_timing
from dealroom.utils.responses import E, api_error

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
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

    # ── Security headers ─────────────────────────────────────────────────
    init_security_headers(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guard (Content-Type on mutating API calls) ───────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.content_length and "json" not in ct and "multipart/form-data" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import models so Alembic and create_all see them ─────────────────
    from dealroom.models import deal_room as _deal_room_models          # noqa: F401
    from dealroom.models import deal_room_draft as _deal_room_draft_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()
        app.logger.debug("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from dealroom.blueprints.deal_room_bp import deal_room_bp
    from dealroom.blueprints.health_bp import health_bp

    app.register_blueprint(deal_room_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("cleanup-expired-drafts")
    def cleanup_expired_drafts_cmd():
        """Delete drafts whose expiry has passed."""
        from dealroom.services import deal_room_service
        removed = deal_room_service.cleanup_expired_drafts()
        click.echo(f"Removed {removed} expired drafts.")

    @app.cli.command("run-job")
    @click.argument("job_name")
    def run_job_cmd(job_name):
        """Run one registered scheduled job by name."""
        from dealroom.services.scheduler_service import SchedulerService
        outcome = SchedulerService.run_job(job_name)
        click.echo(f"{job_name}: {outcome['status']} {outcome.get('result') or outcome.get('error') or ''}")
        if outcome["status"] != "success":
            raise SystemExit(1)

    @app.cli.command("list-jobs")
    def list_jobs_cmd():
        """List registered scheduled jobs."""
        from dealroom.services.scheduler_service import SchedulerService
        for job in SchedulerService.list_jobs():
            click.echo(f"{job['job_name']:<24} {job['description']}")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def payload_too_large(e):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return api_error(E.UNSUPPORTED_MEDIA_TYPE, e.description)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, f"Too many requests: {e.description}")

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    # ── Scheduler initialization (import jobs to register them) ──────────
    import importlib
    importlib.import_module("dealroom.services.scheduled_jobs")  # registers @register_job handlers
    from dealroom.services.scheduler_service import SchedulerService as _SchedulerSvc
    _SchedulerSvc.init_app(app)

    return app
