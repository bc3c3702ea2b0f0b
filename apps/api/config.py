"""
DisasterLink - Configuration

Every value comes from the environment (a project-root ``.env`` is loaded by
``app.py``). Secrets have development defaults only.
"""
import os
import logging
from datetime import timedelta
from pathlib import Path
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

# <repo>/apps/api/config.py -> BASE_DIR=<repo>
_API_DIR = Path(__file__).parent.resolve()
BASE_DIR = _API_DIR.parent.parent if (_API_DIR.parent.parent / 'apps' / 'api').exists() else _API_DIR

_SECRET_NAMES = ('SECRET_KEY', 'JWT_SECRET_KEY')


def _is_production() -> bool:
    return os.getenv('FLASK_ENV', 'development') == 'production'


def _require_env(name: str, default: str = None) -> str:
    """Read ``name``; secrets and default-less values must be set in production."""
    value = os.getenv(name)
    if value:
        return value
    if _is_production() and (default is None or name in _SECRET_NAMES):
        raise RuntimeError(
            f"SECURITY ERROR: {name} environment variable is required in production."
        )
    if default is None:
        raise RuntimeError(f"{name} environment variable is required")
    logging.debug(f"Using default value for {name}")
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _with_sslmode(url: str) -> str:
    sslmode = os.getenv('DATABASE_SSLMODE', 'require')
    if sslmode == 'disable':
        return url
    try:
        parsed = urlparse(url)
    except ValueError as e:
        # Unescaped characters in the password can break urlparse
        logging.warning(f"Could not parse DATABASE_URL: {e}")
        if 'sslmode=' in url:
            return url
        return f"{url}{'&' if '?' in url else '?'}sslmode={sslmode}"
    query = parse_qs(parsed.query)
    query.setdefault('sslmode', [sslmode])
    return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))


def get_database_url() -> str:
    """PostgreSQL (psycopg 3) from ``DATABASE_URL``, else a local SQLite file."""
    url = os.getenv('DATABASE_URL')
    if not url:
        fallback = f"sqlite:///{BASE_DIR / 'disasterlink.db'}"
        logging.warning("DATABASE_URL not set; using fallback %s", fallback)
        return fallback

    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    if url.startswith('postgresql://'):
        url = _with_sslmode(url).replace('postgresql://', 'postgresql+psycopg://', 1)
    return url


def get_engine_options(db_url: str) -> dict:
    if db_url.startswith('sqlite://'):
        from sqlalchemy.pool import NullPool
        return {'poolclass': NullPool}

    options = {'pool_pre_ping': True}
    if db_url.startswith('postgresql'):
        options.update({
            'pool_recycle': 180,
            'pool_timeout': 20,
            'pool_size': _env_int('DATABASE_POOL_SIZE', 5),
            'max_overflow': 5,
            'connect_args': {
                'connect_timeout': 20,
                # Row locks taken by boundary review and invite claims must not hang
                'options': '-c statement_timeout=20000 -c lock_timeout=5000',
                'application_name': 'disasterlink-api',
            },
        })
    return options


class Config:
    """Base configuration"""

    SECRET_KEY = _require_env('SECRET_KEY', 'dev-secret-key-for-local-development-only')
    DEBUG = _env_flag('DEBUG', False)
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    # Database
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = DEBUG
    SQLALCHEMY_ENGINE_OPTIONS = get_engine_options(SQLALCHEMY_DATABASE_URI)

    # JWT: identity is the actor id, the role travels as a claim
    JWT_SECRET_KEY = _require_env('JWT_SECRET_KEY', 'jwt-dev-secret-for-local-development-only')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=_env_int('JWT_ACCESS_TOKEN_EXPIRES', 86400))
    JWT_ALGORITHM = 'HS256'
    JWT_TOKEN_LOCATION = ['headers']

    # Rate limiting
    RATELIMIT_ENABLED = _env_flag('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '2000 per day;500 per hour')
    RATELIMIT_HEADERS_ENABLED = True

    # Affiliation and coordination rules
    ADMIN_INVITE_TTL_HOURS = _env_int('ADMIN_INVITE_TTL_HOURS', 72)
    NEED_DESCRIPTION_MIN_LENGTH = _env_int('NEED_DESCRIPTION_MIN_LENGTH', 5)
    ASSISTANCE_DESCRIPTION_MIN_LENGTH = _env_int('ASSISTANCE_DESCRIPTION_MIN_LENGTH', 3)
    MAX_PHOTO_URLS = _env_int('MAX_PHOTO_URLS', 10)

    APP_NAME = os.getenv('APP_NAME', 'DisasterLink')

    # Frontends allowed by CORS
    WEB_URL = os.getenv('WEB_URL', 'http://localhost:5173')
    ADMIN_URL = os.getenv('ADMIN_URL', 'http://localhost:3001')

    @staticmethod
    def init_app(app):
        if app.config.get('FLASK_ENV') != 'production':
            return
        if app.config.get('DEBUG'):
            app.logger.warning("DEBUG is enabled in production; error details may leak to clients")
        if app.config.get('RATELIMIT_ENABLED') and \
                app.config.get('RATELIMIT_STORAGE_URI', '').strip().lower() == 'memory://':
            raise RuntimeError("RATELIMIT_STORAGE_URI must use a shared backend (e.g., Redis) in production.")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = True


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = 'test-secret'
    RATELIMIT_ENABLED = False


config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
