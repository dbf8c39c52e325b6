"""
Chamber Service Portal
Flask Application Factory.

Usage:
    from portal import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from portal.ai import init_assistant
from portal.auth import init_auth
from portal.config import config
from portal.middleware.logging_config import configure_logging
from portal.middleware.rate_limiter import init_rate_limits
from portal.middleware.timing import init_request_timing
from portal.models import db

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
    default_limits=[],                     # limits are applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None, *, access_policy=None, assistant=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        access_policy: AccessPolicy to install (default: allow everything).
        assistant: ApplicationAssistant to install (default: canned responses).

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

    # ── Collaborators ────────────────────────────────────────────────────
    init_auth(app, access_policy)
    init_assistant(app, assistant)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Models (register tables on the metadata) ─────────────────────────
    from portal.models import application as _application_models  # noqa: F401
    from portal.models import audit as _audit_models              # noqa: F401
    from portal.models import certificate as _certificate_models  # noqa: F401
    from portal.models import legacy as _legacy_models            # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name != "production":
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.testing:
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from portal.blueprints.ai_bp import ai_bp
    from portal.blueprints.applications_bp import applications_bp
    from portal.blueprints.dashboard_bp import dashboard_bp
    from portal.blueprints.health_bp import health_bp
    from portal.blueprints.legacy_bp import legacy_bp
    from portal.blueprints.submissions_bp import submissions_bp

    app.register_blueprint(submissions_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(legacy_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("reset-applications")
    @click.confirmation_option(prompt="Delete ALL applications, certificates and activity logs?")
    def reset_applications_cmd():
        """Purge every application family together with its audit trail."""
        from portal.services.maintenance import reset_all_applications
        result = reset_all_applications()
        for table, count in result["before"].items():
            click.echo(f"{table:35s} {count:>6d} -> {result['after'][table]}")

    @app.cli.command("migrate-legacy")
    def migrate_legacy_cmd():
        """Copy legacy ESG applications into the base + extension model."""
        from portal.services.maintenance import migrate_legacy_applications
        summary = migrate_legacy_applications()
        click.echo(
            f"total={summary['total']} migrated={summary['migrated']} "
            f"skipped={summary['skipped']} failed={summary['failed']}"
        )

    @app.cli.command("cleanup-orphans")
    def cleanup_orphans_cmd():
        """Delete base applications that have no service extension."""
        from portal.services.maintenance import cleanup_orphaned_applications
        result = cleanup_orphaned_applications()
        click.echo(f"Deleted {result['deleted']} orphaned applications")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
