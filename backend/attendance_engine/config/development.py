"""Development configuration."""
import os

from .base import Config


class DevelopmentConfig(Config):
    """Development configuration class."""

    DEBUG = True
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///attendance_dev.db'
    SQLALCHEMY_ECHO = True

    # Redis is optional in development; notifications are only logged without it
    REDIS_URL = os.environ.get('REDIS_URL') or None

    LOG_LEVEL = 'DEBUG'
