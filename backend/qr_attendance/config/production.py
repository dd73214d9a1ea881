"""Production configuration."""
import os
from datetime import timedelta

from .base import Config, normalize_database_url


class ProductionConfig(Config):
    """Production configuration class."""
    ENV_NAME = 'production'

    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')  # Must be set in production

    # Database
    SQLALCHEMY_DATABASE_URI = normalize_database_url(os.getenv('DATABASE_URL'))
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Redis backs both the admin token store and the rate limiter
    TOKEN_STORE_URL = os.getenv('TOKEN_STORE_URL') or os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'

    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    # Enhanced security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    LOG_LEVEL = 'INFO'
    LOG_FILE = os.getenv('LOG_FILE', '/app/logs/app.log')
