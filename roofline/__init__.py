"""
Roofline Project Tracker
Flask Application Factory.

Usage:
    from roofline import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
    app = create_app(config_overrides={"AUTO_CREATE_TABLES": False})
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from roofline.config import config
from roofline.models import db
from roofline.middleware.logging_config import configure_logging
from roofline.middleware.rate_limiter import init_rate_limits
from roofline.middleware.timing import init_request_timing
from roofline.utils.errors import register_error_handlers

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


MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None, config_overrides=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        config_overrides: Settings applied on top of the config class, before
                     any extension reads them.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to start without DATABASE_URL
    app.config.from_object(config[config_name]())
    if config_overrides:
        app.config.update(config_overrides)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    # ── Import all models so Alembic can detect them ─────────────────────
    from roofline.models import auth as _auth_models               # noqa: F401
    from roofline.models import project as _project_models         # noqa: F401
    from roofline.models import workflow as _workflow_models       # noqa: F401
    from roofline.models import notification as _notification_models  # noqa: F401
    from roofline.models import scheduling as _scheduling_models   # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES"):
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()
            app.logger.info("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from roofline.blueprints.bubbles_bp import bubbles_bp
    from roofline.blueprints.health_bp import health_bp
    from roofline.blueprints.notification_bp import notification_bp
    from roofline.blueprints.scheduler_bp import scheduler_bp
    from roofline.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(scheduler_bp)
    app.register_blueprint(bubbles_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-workflow")
    def seed_workflow_cmd():
        """Seed the default roofing workflow catalog."""
        from roofline.services.workflow_catalog import seed_default_catalog
        count = seed_default_catalog()
        db.session.commit()
        click.echo(f"Seeded {count} new workflow line items.")

    @app.cli.command("scan-alerts")
    def scan_alerts_cmd():
        """Run the workflow alert scan once."""
        from roofline.services.alerting import WorkflowAlertService
        click.echo(WorkflowAlertService.scan())

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

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

    # ── Scheduler initialization (registers @register_job handlers) ──────
    from roofline.services.scheduler_service import SchedulerService
    SchedulerService.init_app(app)

    return app
