"""Test request validation and time helpers."""
from datetime import date, datetime

import pytest

from attendance_engine.config import get_config, qr_secret_for
from attendance_engine.utils.exceptions import InvalidTimestamp, ValidationError
from attendance_engine.utils.helpers import isoformat_utc, local_date
from attendance_engine.utils.identity import Identity
from attendance_engine.utils.validators import Validator


def test_parse_timestamp_normalizes_to_utc():
    assert Validator.parse_timestamp('2024-03-01T09:00:00Z') == datetime(2024, 3, 1, 9, 0)
    assert Validator.parse_timestamp('2024-03-01T12:00:00+03:00') == datetime(2024, 3, 1, 9, 0)
    assert Validator.parse_timestamp(None) is None


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(InvalidTimestamp):
        Validator.parse_timestamp('soon')
    with pytest.raises(InvalidTimestamp):
        Validator.parse_timestamp(1709283600)


def test_parse_location():
    assert Validator.parse_location({'latitude': 1, 'longitude': -2.5}) == {
        'latitude': 1.0, 'longitude': -2.5
    }
    assert Validator.parse_location(None) is None

    with pytest.raises(ValidationError):
        Validator.parse_location({'latitude': 10})
    with pytest.raises(ValidationError):
        Validator.parse_location({'latitude': True, 'longitude': 0})
    with pytest.raises(ValidationError):
        Validator.parse_location({'latitude': 0, 'longitude': 181})
    with pytest.raises(ValidationError):
        Validator.parse_location({'latitude': float('nan'), 'longitude': 0})
    with pytest.raises(ValidationError):
        Validator.parse_location({'latitude': 0, 'longitude': float('inf')})


def test_parse_limit():
    assert Validator.parse_limit(None, 50, 500) == 50
    assert Validator.parse_limit('10', 50, 500) == 10
    assert Validator.parse_limit('9999', 50, 500) == 500
    with pytest.raises(ValidationError):
        Validator.parse_limit('ten', 50, 500)


def test_isoformat_utc():
    assert isoformat_utc(datetime(2024, 3, 1, 9, 0, 0, 999)) == '2024-03-01T09:00:00Z'
    assert isoformat_utc(None) is None


def test_local_date_uses_time_zone():
    late_evening = datetime(2024, 3, 1, 22, 30)
    assert local_date(late_evening, 'UTC') == date(2024, 3, 1)
    assert local_date(late_evening, 'Asia/Baghdad') == date(2024, 3, 2)


def test_identity_roles():
    teacher = Identity(user_id='t1', roles=('teacher',))
    assert teacher.is_staff()
    assert not teacher.is_admin()
    assert not Identity(user_id='s1', roles=('student',)).is_staff()


def test_qr_secret_defaults_per_environment():
    assert qr_secret_for({'ENVIRONMENT': 'staging', 'QR_SIGNING_SECRET': None}) == 'staging-qr-secret'
    assert qr_secret_for({'ENVIRONMENT': 'staging', 'QR_SIGNING_SECRET': 'set'}) == 'set'


def test_get_config_names():
    assert get_config('testing').TESTING is True
    assert get_config('development').DEBUG is True
