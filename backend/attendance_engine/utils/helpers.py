"""Helper functions for the application."""
from datetime import date, datetime, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from flask import jsonify


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': getattr(error, 'description', None) or str(error),
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success"):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response)


def error_response(message: str, status_code: int = 400, **extra):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    body.update(extra)
    return jsonify(body), status_code


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the storage convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: datetime = None) -> str:
    """Render a stored (naive UTC) datetime as ISO-8601 with a Z suffix."""
    if value is None:
        return None
    return to_utc_naive(value).isoformat(timespec='seconds') + 'Z'


def get_timezone(name: str) -> tzinfo:
    if not name or name.upper() == 'UTC':
        return timezone.utc
    return ZoneInfo(name)


def local_date(value: datetime, tz_name: str) -> date:
    """Calendar day of a naive UTC datetime in the given time zone."""
    return value.replace(tzinfo=timezone.utc).astimezone(get_timezone(tz_name)).date()


def today_in(tz_name: str) -> date:
    return local_date(utcnow(), tz_name)
