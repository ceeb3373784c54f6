# backend/app/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate, NOTIFICATION_SINK_KEY



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Overrides (tests, scripts) must land before extensions read the config
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.notification_service import LoggingNotificationSink
    app.extensions.setdefault(NOTIFICATION_SINK_KEY, LoggingNotificationSink())

    # Register blueprints
    from .routes.system import system_bp
    from .routes.orders import orders_bp, vendor_orders_bp
    from .routes.pricing import pricing_bp
    from .routes.catalog import catalog_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(vendor_orders_bp)
    app.register_blueprint(pricing_bp)
    app.register_blueprint(catalog_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
