"""
Flask application factory.

Creates and configures the Flask app and registers the health and stats sync
blueprints.
"""
from flask import Flask


def create_app():
    """Create and configure the Flask application."""
    from adstats.logging_config import configure_logging
    from adstats.database import import_models

    app = Flask(__name__)

    configure_logging(app)

    from adstats.routes.health import bp as health_bp
    from adstats.routes.sync import bp as sync_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(sync_bp)

    # Import models so Base.metadata knows about them.
    # The CRUD layer owns the schema; no init_db() call here.
    import_models()

    return app
