"""Attendance Tracking & Reporting Engine - Application Factory."""
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)


def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from attendance_engine.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Message bus publisher shared by every request
    from attendance_engine.services.providers import init_notifier
    init_notifier(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Attendance Engine',
            'environment': app.config.get('ENVIRONMENT'),
            'version': '1.0.0'
        })

    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from attendance_engine.api.attendance import attendance_bp
    from attendance_engine.api.qr import qr_bp
    from attendance_engine.api.reports import reports_bp

    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')
    app.register_blueprint(qr_bp, url_prefix='/api/qr')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from werkzeug.exceptions import HTTPException

    from attendance_engine.utils.exceptions import AttendanceError
    from attendance_engine.utils.helpers import error_response, handle_error

    @app.errorhandler(AttendanceError)
    def attendance_error(error):
        if error.status_code >= 500:
            app.logger.error("Attendance request failed: %s", error.message)
        return error_response(error.message, error.status_code, **error.payload)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error("Internal server error", 500)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'error': True,
            'message': 'Token has expired',
            'status_code': 401
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Invalid token',
            'status_code': 401
        }), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Authorization token required',
            'status_code': 401
        }), 401


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.getLogger('attendance_engine').setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        logging.getLogger('attendance_engine').addHandler(file_handler)

        app.logger.setLevel(level)
        app.logger.info('Attendance engine startup')


def setup_database(app: Flask) -> None:
    """Import models so they are registered with SQLAlchemy."""
    with app.app_context():
        from attendance_engine.models import AttendanceRecord, ClassSession  # noqa: F401


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    from attendance_engine.cli import register_cli
    register_cli(app)
