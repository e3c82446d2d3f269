from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, bcrypt, login_manager, jwt
from .errors import HMSError
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    from hms.config import get_config
    config_class = get_config(config_name)
    if hasattr(config_class, 'validate'):
        config_class.validate()
    app.config.from_object(config_class)

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    jwt.init_app(app)

    # Initialize CORS
    from hms.utils.cors import init_cors
    init_cors(app)

    from hms.middleware import setup_middleware
    setup_middleware(app)

    register_error_handlers(app)
    register_jwt_handlers()

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_dir = os.path.dirname(app.config['LOG_FILE'])
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            app.config['LOG_FILE'],
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    # Flask-Login: sessions are not used for the API, JWT carries identity
    login_manager.session_protection = 'strong'

    @login_manager.user_loader
    def load_user(user_id):
        from hms.models import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401

    with app.app_context():
        from . import models  # noqa: F401  registers tables with SQLAlchemy

        from .routes import (
            health_bp, auth_bp, admin_bp, doctor_bp, patient_bp, appointment_bp,
            discharge_bp, invoice_bp, medical_record_bp, prescription_bp, message_bp,
        )
        app.register_blueprint(health_bp)
        app.register_blueprint(auth_bp)
        app.register_blueprint(admin_bp)
        app.register_blueprint(doctor_bp)
        app.register_blueprint(patient_bp)
        app.register_blueprint(appointment_bp)
        app.register_blueprint(discharge_bp)
        app.register_blueprint(invoice_bp)
        app.register_blueprint(medical_record_bp)
        app.register_blueprint(prescription_bp)
        app.register_blueprint(message_bp)

    return app


def register_error_handlers(app):
    @app.errorhandler(HMSError)
    def handle_domain_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            logger.error("Domain error: %s", error.message, exc_info=True)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'success': False,
            'error': error.description or error.name
        }), error.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        db.session.rollback()
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500


def register_jwt_handlers():
    """Missing or bad tokens answer in the same envelope as every other error."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'success': False, 'error': 'Authentication required'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'success': False, 'error': f'Invalid token: {reason}'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'success': False, 'error': 'Token has expired'}), 401
