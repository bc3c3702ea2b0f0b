"""
DisasterLink - Flask API Application

Run locally with ``python apps/api/app.py`` or ``flask --app apps.api.app run``.
"""
import sys
import os
import time
from pathlib import Path
from dotenv import load_dotenv

API_DIR = Path(__file__).parent.resolve()
PROJECT_ROOT = API_DIR.parent.parent.resolve()

env_path = PROJECT_ROOT / '.env'
if env_path.exists():
    load_dotenv(env_path)

# apps.api.* imports resolve from the repo root
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy import text

from apps.api.config import Config
from apps.api import db, migrate, jwt, limiter, __version__
from apps.api.utils.security import APIError, sanitize_log_message

_DEV_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)


def _cors_origins(app) -> list:
    origins = [
        (app.config.get(key) or '').strip()
        for key in ('WEB_URL', 'ADMIN_URL')
    ]
    origins.extend((os.getenv('CORS_ALLOWED_ORIGINS') or '').split(','))
    if not _is_production(app):
        origins.extend(_DEV_ORIGINS)
    return list(dict.fromkeys(o.strip() for o in origins if o and o.strip()))


def _is_production(app) -> bool:
    return app.config.get('FLASK_ENV') == 'production' and not app.config.get('DEBUG')


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    if app.config.get('RATELIMIT_ENABLED', True):
        limiter.init_app(app)
        app.logger.info("Rate limiting enabled")
    else:
        app.logger.warning("Rate limiting is DISABLED - not recommended for production")

    origins = _cors_origins(app)
    if _is_production(app) and not origins:
        raise RuntimeError(
            "CORS configuration error: set WEB_URL/ADMIN_URL or CORS_ALLOWED_ORIGINS in production."
        )
    # Wildcard origins are not allowed together with credentials
    CORS(app,
         origins=origins,
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         supports_credentials=True,
         expose_headers=["Content-Type", "Authorization"])


def _register_jwt_callbacks(app):
    """Token failures render in the same ``{"error", "code"}`` shape as APIError."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'Authorization required', 'code': 'NO_AUTH'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        app.logger.warning(f"Invalid token: {reason}")
        return jsonify({'error': 'Invalid token', 'code': 'INVALID_TOKEN'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has expired', 'code': 'TOKEN_EXPIRED'}), 401


def _register_error_handlers(app):
    @app.errorhandler(APIError)
    def handle_api_error(error):
        # The failed operation must leave no partial writes behind
        db.session.rollback()
        reason = getattr(error, 'reason', None)
        if error.status_code >= 500:
            app.logger.error(f"{error.code}: {error.message}")
        elif reason:
            app.logger.info(sanitize_log_message(f"{error.code}: {reason}"))
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found', 'code': 'NOT_FOUND'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'code': 'METHOD_NOT_ALLOWED'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}), 500

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(error):
        return jsonify({'error': 'Rate limit exceeded', 'code': 'RATE_LIMITED'}), 429


def _register_health(app):
    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'ok',
            'service': f"{app.config.get('APP_NAME', 'DisasterLink')} API",
            'version': __version__,
        }), 200

    @app.route('/health/db', methods=['GET'])
    def db_health_check():
        start = time.time()
        try:
            db.session.execute(text('SELECT 1')).fetchone()
            db.session.rollback()
        except Exception as e:
            app.logger.error(f"Database health check failed: {e}")
            return jsonify({
                'status': 'unhealthy',
                'database': 'disconnected',
                'latency_ms': round((time.time() - start) * 1000, 2),
            }), 503
        return jsonify({
            'status': 'healthy',
            'database': 'connected',
            'latency_ms': round((time.time() - start) * 1000, 2),
        }), 200


def create_app(config_class=Config):
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(config_class)
    config_class.init_app(app)

    db_url = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    app.logger.info("Database: %s", 'PostgreSQL' if 'postgresql' in db_url else 'SQLite (local)')

    _init_extensions(app)

    # Models must be imported before create_all / migrations see the metadata
    from apps.api import models  # noqa: F401
    from apps.api.utils.realtime import install_change_feed
    install_change_feed()

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Permissions-Policy'] = 'geolocation=(self), microphone=(), camera=()'
        if not app.config.get('DEBUG'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    _register_jwt_callbacks(app)
    _register_error_handlers(app)

    from apps.api.routes import ALL_BLUEPRINTS
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    _register_health(app)
    return app


app = create_app()

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
