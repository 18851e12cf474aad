"""
Checklist Platform
Flask Application Factory.

Usage:
    from checklist_platform import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from checklist_platform.config import config
from checklist_platform.models import db
from checklist_platform.middleware.logging_config import configure_logging
from checklist_platform.middleware.rate_limiter import init_rate_limits
from checklist_platform.middleware.timing import init_request_timing

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
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
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
    config_cls = config[config_name]
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

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

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                return {"error": "Content-Type must be application/json"}, 415
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from checklist_platform.models import company as _company_models            # noqa: F401
    from checklist_platform.models import checklist as _checklist_models        # noqa: F401
    from checklist_platform.models import notification as _notification_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name != "production":
        with app.app_context():
            db.create_all()

    # ── Default blueprint version ────────────────────────────────────────
    from checklist_platform.services.checklist_blueprint import default_registry
    registry = default_registry()
    preferred = app.config.get("CHECKLIST_DEFAULT_BLUEPRINT")
    if preferred and preferred in registry.versions():
        registry.set_default(preferred)
    elif preferred:
        app.logger.warning("CHECKLIST_DEFAULT_BLUEPRINT=%s is not registered; using %s",
                           preferred, registry.default_version)

    # ── Blueprints ───────────────────────────────────────────────────────
    from checklist_platform.blueprints.company_bp import company_bp
    from checklist_platform.blueprints.checklist_bp import checklist_bp
    from checklist_platform.blueprints.notification_bp import notification_bp
    from checklist_platform.blueprints.calendar_bp import calendar_bp
    from checklist_platform.blueprints.health_bp import health_bp

    app.register_blueprint(company_bp)
    app.register_blueprint(checklist_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("cleanup-orphan-notifications")
    def cleanup_orphan_notifications_cmd():
        """Delete notifications whose task no longer exists."""
        from checklist_platform.services.checklist_store import cleanup_orphan_notifications
        deleted = cleanup_orphan_notifications(limit=app.config["NOTIFICATION_CLEANUP_LIMIT"])
        db.session.commit()
        logger.info("Removed %d orphan notifications.", len(deleted))

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
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
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
