from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_marshmallow import Marshmallow
from marshmallow import ValidationError
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
import os

# Extensions, bound to the app in create_app()
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
ma = Marshmallow()


def create_app(config_name=None, catalog=None, notifier=None):
    """Build the application.

    ``catalog`` and ``notifier`` may be injected (tests do); otherwise the
    catalog is read from ACTIVITY_CATALOG_PATH and a Brevo notifier is built
    from the app config.
    """
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app = Flask(__name__)

    from config import config

    app.config.from_object(config[config_name])

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)

    # Models must be imported for Flask-Migrate to see them
    from registrar.models import (  # noqa: F401
        Student,
        Contact,
        Registration,
        Payment,
        Voucher,
        ActivityLock,
        User,
    )

    from registrar.catalog import ActivityCatalog
    from registrar.services.notification_service import BrevoNotifier

    if catalog is None:
        catalog = ActivityCatalog.from_json_file(
            app.config.get("ACTIVITY_CATALOG_PATH"), missing_ok=True,
            instructors_path=app.config.get("INSTRUCTORS_PATH"),
        )
    app.extensions["activity_catalog"] = catalog
    app.extensions["notifier"] = notifier or BrevoNotifier.from_config(app.config)
    app.logger.info(
        f"[registrar] Activity catalog loaded with {len(catalog)} activities"
    )

    from registrar.api.auth_bp import auth_bp
    from registrar.api.registrations_bp import registrations_bp
    from registrar.api.payments_bp import payments_bp
    from registrar.api.activities_bp import activities_bp
    from registrar.api.reminders_bp import reminders_bp
    from registrar.api.rosters_bp import rosters_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(registrations_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(rosters_bp)

    _register_error_handlers(app)

    return app


def _register_error_handlers(app):
    from registrar.exceptions import ServiceError

    @app.errorhandler(ServiceError)
    def handle_service_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        return jsonify({"message": "Invalid request", "errors": err.messages}), 400

    @app.errorhandler(PoolTimeoutError)
    @app.errorhandler(OperationalError)
    def handle_database_unavailable(err):
        app.logger.error(f"[registrar] Database unavailable: {err}")
        db.session.rollback()
        return jsonify(
            {"message": "Service temporarily unavailable, please retry"}
        ), 500


def shutdown(app):
    """Dispose the engine pool; call on process stop."""
    with app.app_context():
        db.engine.dispose()
