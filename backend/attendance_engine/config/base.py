"""Base configuration shared by every environment."""
import os
from datetime import timedelta


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


class Config:
    """Base configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # Deployment environment, also used to derive the QR signing secret
    ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')

    # JWT Configuration (tokens are issued by the identity provider)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"

    # Attendance policy
    ATTENDANCE_TIMEZONE = os.environ.get('ATTENDANCE_TIMEZONE', 'UTC')
    GRACE_PERIOD_MINUTES = _env_int('GRACE_PERIOD_MINUTES', 10)
    GEOLOCATION_RADIUS_METERS = _env_int('GEOLOCATION_RADIUS_METERS', 100)
    ENABLE_GEOLOCATION_VALIDATION = _env_bool('ENABLE_GEOLOCATION_VALIDATION', True)
    QR_CODE_EXPIRY_MINUTES = _env_int('QR_CODE_EXPIRY_MINUTES', 15)
    QR_SIGNING_SECRET = os.environ.get('QR_SIGNING_SECRET')
    RECORD_RETENTION_DAYS = _env_int('RECORD_RETENTION_DAYS', 365)

    # Notifications (Redis pub/sub)
    REDIS_URL = os.environ.get('REDIS_URL')
    ENABLE_NOTIFICATIONS = _env_bool('ENABLE_NOTIFICATIONS', False)
    NOTIFICATION_CHANNEL = os.environ.get('NOTIFICATION_CHANNEL', 'attendance-events')

    # Reports
    ENABLE_CSV_EXPORT = _env_bool('ENABLE_CSV_EXPORT', True)
    ENABLE_ANALYTICS = _env_bool('ENABLE_ANALYTICS', True)
    ENABLE_REPORT_STORAGE = _env_bool('ENABLE_REPORT_STORAGE', False)
    REPORTS_FOLDER = os.environ.get('REPORTS_FOLDER', 'reports')
    DEFAULT_REPORT_DAYS = 7
    DEFAULT_HISTORY_DAYS = 30

    # Pagination
    DEFAULT_PAGE_SIZE = 50
    MAX_PAGE_SIZE = 500

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/app.log')


def qr_secret_for(config) -> str:
    """Return the QR signing secret for the configured environment."""
    explicit = config.get('QR_SIGNING_SECRET')
    if explicit:
        return explicit
    return f"{config.get('ENVIRONMENT', 'dev')}-qr-secret"
