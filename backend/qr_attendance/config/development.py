"""Development configuration."""
import os

from .base import Config, normalize_database_url


class DevelopmentConfig(Config):
    """Development configuration class."""
    ENV_NAME = 'development'
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.environ.get('DATABASE_URL') or 'sqlite:///qr_attendance_dev.db'
    )
    SQLALCHEMY_ECHO = False
    AUTO_CREATE_TABLES = True

    # Every origin is allowed while developing
    CORS_ORIGINS = ['*']

    EXPOSE_ERROR_DETAILS = True
    LOG_LEVEL = 'DEBUG'
