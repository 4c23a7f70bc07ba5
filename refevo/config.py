"""
Configuration management for Refevo.
"""
import hashlib
import logging
import os
from dotenv import load_dotenv

load_dotenv()


def _get_secret_key():
    """Read SECRET_KEY from env; support common alternate names and treat empty as unset."""
    for name in ("SECRET_KEY", "FLASK_SECRET_KEY"):
        val = os.environ.get(name)
        if val and isinstance(val, str) and val.strip():
            return val.strip()
    return None


def _production_secret_fallback():
    """Deterministic key from DATABASE_URL so all Gunicorn workers share the same key."""
    url = os.environ.get("DATABASE_URL") or ""
    if not url:
        return None
    return hashlib.sha256(url.encode()).hexdigest()


class Config:
    """Base configuration."""
    SECRET_KEY = _get_secret_key()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Email delivery (Resend)
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY')
    EMAIL_FROM = os.environ.get('EMAIL_FROM', 'Refevo <no-reply@refevo.com>')
    SITE_URL = os.environ.get('SITE_URL', 'http://localhost:5000')
    OPT_OUT_SECRET = os.environ.get('OPT_OUT_SECRET')

    # Outbound HTTP calls are bounded so a slow provider surfaces a retryable error
    HTTP_TIMEOUT_SECONDS = int(os.environ.get('HTTP_TIMEOUT_SECONDS', '30'))

    # Resend governance for the base `user` role
    RESEND_WINDOW_DAYS = 14
    RESEND_LIMIT = 3
    RESEND_COOLDOWN_SECONDS = 10

    # Role impersonation is only honoured outside production
    ALLOW_ROLE_OVERRIDE = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    ALLOW_ROLE_OVERRIDE = True
    _db_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'instance', 'refevo.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        f'sqlite:///{_db_path}'
    )
    if not Config.SECRET_KEY:
        SECRET_KEY = "dev-secret-key-change-in-production"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///instance/refevo.db')
    if not Config.SECRET_KEY:
        _fallback = _production_secret_fallback()
        if _fallback:
            SECRET_KEY = _fallback
            logging.warning(
                "SECRET_KEY not set; using deterministic key from DATABASE_URL. "
                "Set SECRET_KEY for stronger security."
            )
        else:
            SECRET_KEY = "production-change-me-set-SECRET_KEY"

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours in seconds

    @staticmethod
    def init_app(app):
        app.config['SESSION_COOKIE_SECURE'] = os.environ.get('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
        app.config['SESSION_COOKIE_PATH'] = '/'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    ALLOW_ROLE_OVERRIDE = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RESEND_API_KEY = 'test-resend-key'
    OPT_OUT_SECRET = 'test-opt-out-secret'
    SITE_URL = 'http://localhost'
    if not Config.SECRET_KEY:
        SECRET_KEY = "test-secret-key"


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
