"""Error taxonomy for attendance operations.

Every error carries the HTTP status the API layer answers with and an optional
payload of extra fields merged into the error body.
"""
from typing import Any, Dict, Optional


class AttendanceError(Exception):
    """Base class for all attendance errors."""

    status_code = 400
    default_message = 'Attendance request failed'

    def __init__(self, message: str = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = payload or {}


class ValidationError(AttendanceError):
    default_message = 'Invalid request'


class NotFound(AttendanceError):
    status_code = 404
    default_message = 'Resource not found'


class Forbidden(AttendanceError):
    status_code = 403
    default_message = 'Operation not permitted'


class InvalidToken(AttendanceError):
    default_message = 'Invalid or expired QR code'


class OutOfRange(AttendanceError):
    default_message = 'Location validation failed'

    def __init__(self, distance: float, allowed_radius: float, message: str = None):
        super().__init__(message, payload={
            'distance': round(distance, 2),
            'allowed_radius': allowed_radius
        })
        self.distance = distance
        self.allowed_radius = allowed_radius


class AlreadyCheckedIn(AttendanceError):
    status_code = 409
    default_message = 'Already checked in for this class'


class AlreadyCheckedOut(AttendanceError):
    status_code = 409
    default_message = 'Already checked out'


class InvalidTimestamp(AttendanceError):
    default_message = 'Invalid timestamp'


class Conflict(AttendanceError):
    status_code = 409
    default_message = 'Record already exists'


class ReportTypeInvalid(AttendanceError):
    default_message = 'Invalid report type'


class FeatureDisabled(AttendanceError):
    default_message = 'Feature not enabled'


class Unavailable(AttendanceError):
    status_code = 503
    default_message = 'Service temporarily unavailable'
