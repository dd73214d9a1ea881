"""QR Attendance - Application Factory."""
import logging
import os
import traceback
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import event
from sqlalchemy.engine import Engine

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless asked per connection."""
    if dbapi_connection.__class__.__module__.startswith('sqlite3'):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def create_app(config_name: str = None, config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from qr_attendance.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    # Setup logging
    setup_logging(app)

    # Refuse to start with forgeable QR codes
    check_startup_secrets(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]), supports_credentials=True)

    # Admin token store
    from qr_attendance.services.token_store import build_token_store
    app.extensions['admin_tokens'] = build_token_store(app.config.get('TOKEN_STORE_URL'))

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Setup database
    setup_database(app)

    # Add CLI commands
    register_commands(app)

    @app.route('/health')
    def health_check():
        from qr_attendance.utils.timeutils import to_iso, utc_now

        return jsonify({
            'status': 'ok',
            'service': 'QR Attendance',
            'timestamp': to_iso(utc_now()),
            'environment': app.config.get('ENV_NAME')
        })

    return app


def check_startup_secrets(app: Flask) -> None:
    """Fail fast on a production deployment with default secrets."""
    from qr_attendance.config import DEFAULT_ADMIN_PASSWORD, DEFAULT_QR_SECRET

    if app.config.get('ENV_NAME') != 'production':
        return

    secret = app.config.get('QR_SECRET_KEY')
    if not secret or secret == DEFAULT_QR_SECRET:
        app.logger.critical('SECRET_KEY must be set in production; refusing to start')
        raise RuntimeError('SECRET_KEY must be set in production')

    password = app.config.get('ADMIN_PASSWORD')
    if not password or password == DEFAULT_ADMIN_PASSWORD:
        app.logger.warning('ADMIN_PASSWORD should be changed from default in production')


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from qr_attendance.api.auth import auth_bp
    from qr_attendance.api.scan import scan_bp
    from qr_attendance.api.sessions import sessions_bp
    from qr_attendance.api.participants import participants_bp
    from qr_attendance.api.attendance import attendance_bp

    # Auth
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Public scanning
    app.register_blueprint(scan_bp, url_prefix='/api')

    # Admin Management
    app.register_blueprint(sessions_bp, url_prefix='/api/admin/sessions')
    app.register_blueprint(participants_bp, url_prefix='/api/admin/participants')
    app.register_blueprint(attendance_bp, url_prefix='/api/admin/attendance')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from sqlalchemy.exc import SQLAlchemyError
    from werkzeug.exceptions import HTTPException
    from qr_attendance.utils.helpers import handle_error

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return handle_error(e, e.code)

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(e):
        db.session.rollback()
        app.logger.exception('Store failure: %s', e)
        return _internal_error(e)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', e)
        return _internal_error(e)

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
            'message': 'Unauthorized. Admin access required.',
            'status_code': 401
        }), 401

    @jwt.revoked_token_loader
    def revoked_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'error': True,
            'message': 'Token has been revoked',
            'status_code': 401
        }), 401

    @jwt.token_in_blocklist_loader
    def token_not_issued(jwt_header, jwt_payload):
        store = current_app.extensions['admin_tokens']
        return not store.contains(jwt_payload.get('jti'))


def _internal_error(error: Exception):
    """500 body: details only when the config allows it."""
    body = {
        'error': True,
        'message': 'Internal server error',
        'status_code': 500
    }
    if current_app.config.get('EXPOSE_ERROR_DETAILS'):
        body['message'] = str(error)
        body['stack'] = traceback.format_exc()
    return jsonify(body), 500


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

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

        app.logger.info('QR Attendance startup')


def setup_database(app: Flask) -> None:
    """Register models and create tables where the config asks for it."""
    with app.app_context():
        # Import all models
        from qr_attendance.models import (
            Participant, AttendanceSession, AttendanceRecord
        )

        if app.config.get('AUTO_CREATE_TABLES'):
            db.create_all()


def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

    @app.cli.command('seed-db')
    def seed_db():
        """Seed database with demo participants."""
        from qr_attendance.services.seed_service import SeedService

        created = SeedService.seed_participants()
        click.echo(f'Seeded {created} participants.')

    @app.cli.command('end-expired')
    def end_expired():
        """Mark every active session past its expiry as ended."""
        from qr_attendance.services.session_service import SessionService

        ended = SessionService.end_expired_sessions()
        click.echo(f'Ended {ended} expired sessions.')
