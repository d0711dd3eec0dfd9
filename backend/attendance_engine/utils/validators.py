"""Validation utilities for request payloads."""
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from attendance_engine.utils.exceptions import InvalidTimestamp, ValidationError
from attendance_engine.utils.helpers import to_utc_naive


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_coordinates(latitude: Any, longitude: Any) -> Dict[str, Any]:
        """Validate a latitude/longitude pair."""
        errors = []

        for name, value, bound in (('latitude', latitude, 90), ('longitude', longitude, 180)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{name} must be a number")
            elif not math.isfinite(value):
                errors.append(f"{name} must be a finite number")
            elif value < -bound or value > bound:
                errors.append(f"{name} must be between {-bound} and {bound}")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def parse_location(value: Any) -> Optional[Dict[str, float]]:
        """Return a normalized location dict, or None when absent."""
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValidationError("location must be an object")

        result = Validator.validate_coordinates(value.get('latitude'), value.get('longitude'))
        if not result['is_valid']:
            raise ValidationError(result['errors'][0])

        return {
            'latitude': float(value['latitude']),
            'longitude': float(value['longitude'])
        }

    @staticmethod
    def parse_timestamp(value: Any) -> Optional[datetime]:
        """Parse an ISO-8601 timestamp into a naive UTC datetime."""
        if value is None:
            return None
        if not isinstance(value, str):
            raise InvalidTimestamp("timestamp must be an ISO-8601 string")

        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'

        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidTimestamp(f"Invalid timestamp: {value}")

        return to_utc_naive(parsed)

    @staticmethod
    def parse_date(value: Optional[str], field: str = 'date') -> Optional[date]:
        """Parse a YYYY-MM-DD (or ISO timestamp) value into a date."""
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
        except ValueError:
            raise ValidationError(f"Invalid {field} format. Use YYYY-MM-DD")

    @staticmethod
    def parse_limit(value: Any, default: int, maximum: int) -> int:
        if value in (None, ''):
            return default
        try:
            limit = int(value)
        except (TypeError, ValueError):
            raise ValidationError("limit must be an integer")
        if limit < 1:
            raise ValidationError("limit must be positive")
        return min(limit, maximum)
