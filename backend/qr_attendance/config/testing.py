"""Testing configuration."""
from datetime import timedelta

from .base import Config


class TestingConfig(Config):
    """Testing configuration class."""
    ENV_NAME = 'testing'
    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    QR_SECRET_KEY = 'test-qr-secret'
    ADMIN_PASSWORD = 'test-admin-password'
    TOKEN_STORE_URL = 'memory://'

    JWT_SECRET_KEY = 'test-jwt-secret'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)

    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    TIMEZONE = 'UTC'
    EXPOSE_ERROR_DETAILS = True
    LOG_LEVEL = 'WARNING'
