"""Testing configuration."""
from datetime import timedelta

from .base import Config


class TestingConfig(Config):
    """Testing configuration class."""

    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    ENVIRONMENT = 'test'

    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)

    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    # Deterministic policy regardless of the host environment
    ATTENDANCE_TIMEZONE = 'UTC'
    GRACE_PERIOD_MINUTES = 10
    GEOLOCATION_RADIUS_METERS = 100
    ENABLE_GEOLOCATION_VALIDATION = True
    QR_CODE_EXPIRY_MINUTES = 15
    QR_SIGNING_SECRET = None

    # Disable external services in testing
    REDIS_URL = None
    ENABLE_NOTIFICATIONS = False
    ENABLE_CSV_EXPORT = True
    ENABLE_ANALYTICS = True
    ENABLE_REPORT_STORAGE = False
    REPORTS_FOLDER = '/tmp/test_reports'

    LOG_LEVEL = 'WARNING'
