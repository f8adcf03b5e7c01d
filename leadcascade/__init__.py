"""
Flask application factory.

Creates the app, registers the cascade / SLA dashboard / admin blueprints and,
when CASCADE_SWEEP_ENABLED is set, starts the in-process sweep scheduler.
"""
import importlib
import logging

from flask import Flask

logger = logging.getLogger('leadcascade')


def create_app(start_scheduler=None):
    """Create and configure the Flask application."""
    from leadcascade.config import CASCADE_SWEEP_ENABLED, CASCADE_SWEEP_INTERVAL_SECONDS
    from leadcascade.logging_config import configure_logging

    app = Flask(__name__)
    configure_logging(app)

    # Register blueprints
    from leadcascade.routes.dashboard import bp as dashboard_bp
    from leadcascade.routes.cascade import bp as cascade_bp
    from leadcascade.routes.admin import bp as admin_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(cascade_bp)
    app.register_blueprint(admin_bp)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic, so no init_db() call here.
    importlib.import_module('leadcascade.models.cascade_config')
    importlib.import_module('leadcascade.models.cascade_entry')
    importlib.import_module('leadcascade.models.responsibility_change')

    if start_scheduler is None:
        start_scheduler = CASCADE_SWEEP_ENABLED
    if start_scheduler:
        from leadcascade.services.scheduler import SweepScheduler
        app.extensions['cascade_scheduler'] = SweepScheduler(CASCADE_SWEEP_INTERVAL_SECONDS)
        app.extensions['cascade_scheduler'].start()
        logger.info("In-process sweep scheduler enabled")

    return app
