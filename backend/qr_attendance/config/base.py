"""Base configuration shared by every environment."""
import os
from datetime import timedelta

DEFAULT_QR_SECRET = 'your-secret-key-change-this-in-production'
DEFAULT_ADMIN_PASSWORD = 'admin123'


def normalize_database_url(url: str) -> str:
    """Point bare postgres URLs at the psycopg driver."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+psycopg://', 1)
    if url and url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+psycopg://', 1)
    return url


class Config:
    """Base configuration."""
    ENV_NAME = 'base'
    DEBUG = False
    TESTING = False

    SECRET_KEY = os.environ.get('FLASK_SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # QR signing
    QR_SECRET_KEY = os.environ.get('SECRET_KEY') or DEFAULT_QR_SECRET
    QR_IMAGE_BOX_SIZE = 10
    QR_IMAGE_BORDER = 1

    # Admin
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD') or DEFAULT_ADMIN_PASSWORD
    TOKEN_STORE_URL = os.environ.get('TOKEN_STORE_URL') or 'memory://'

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    FRONTEND_URL = os.environ.get('FRONTEND_URL')
    CORS_ORIGINS = [
        origin for origin in (
            FRONTEND_URL,
            'http://localhost:3000',
            'http://localhost:5173',
            r'https://.*\.vercel\.app',
        ) if origin
    ]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = '100 per 15 minutes'
    LOGIN_RATE_LIMIT = '5 per 15 minutes'

    # Sessions and attendance
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')
    SESSION_ID_MAX_ATTEMPTS = 3
    LOW_ATTENDANCE_THRESHOLD = 75

    # Errors and logging
    EXPOSE_ERROR_DETAILS = False
    LOG_LEVEL = 'INFO'
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/app.log')

    AUTO_CREATE_TABLES = False
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB
