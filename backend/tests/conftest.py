"""Shared fixtures for the attendance engine tests."""
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from attendance_engine import create_app, db
from attendance_engine.models import ClassSession
from attendance_engine.services.attendance_store import AttendanceStore
from attendance_engine.services.class_service import ClassSessionLookup
from attendance_engine.services.providers import NOTIFIER_EXTENSION
from attendance_engine.services.session_service import AttendancePolicy, AttendanceSessionService
from attendance_engine.utils.identity import Identity

CLASS_START = datetime(2024, 3, 1, 9, 0, 0)
SECRET = 'test-qr-secret'


class RecordingNotifier:
    """Stands in for the message bus and remembers what was published."""

    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    def publish(self, event):
        self.events.append(event)
        return not self.fail


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    app.extensions[NOTIFIER_EXTENSION] = RecordingNotifier()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def notifier(app):
    return app.extensions[NOTIFIER_EXTENSION]


@pytest.fixture
def class_session(app):
    """Class c1 at (0, 0) starting 2024-03-01 09:00 UTC."""
    session = ClassSession(
        class_id='c1',
        name='Distributed Systems',
        instructor_id='teacher-1',
        course_code='CS401',
        start_time=CLASS_START,
        latitude=0.0,
        longitude=0.0
    )
    return session.save()


@pytest.fixture
def second_class(app):
    session = ClassSession(
        class_id='c2',
        name='Databases',
        instructor_id='teacher-2',
        course_code='CS305',
        start_time=datetime(2024, 3, 1, 13, 0, 0)
    )
    return session.save()


@pytest.fixture
def student():
    return Identity(user_id='student-1', display_name='Alice Student', roles=('student',))


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 1, 9, 5, 0))


@pytest.fixture
def policy():
    return AttendancePolicy(
        grace_period_minutes=10,
        geofence_radius_meters=100,
        geofence_enabled=True,
        token_validity_minutes=15,
        token_secret=SECRET,
        timezone='UTC'
    )


@pytest.fixture
def store(app):
    return AttendanceStore(db.session)


@pytest.fixture
def session_service(app, policy, store, notifier, clock):
    return AttendanceSessionService(
        policy=policy,
        store=store,
        classes=ClassSessionLookup(db.session),
        notifier=notifier,
        clock=clock
    )


def make_token(user_id, roles, name=None):
    return create_access_token(
        identity=user_id,
        additional_claims={'name': name or user_id, 'roles': list(roles)}
    )


@pytest.fixture
def auth_headers(app):
    """Build Authorization headers for a user id and roles."""
    def build(user_id='student-1', roles=('student',), name=None):
        return {'Authorization': f'Bearer {make_token(user_id, roles, name)}'}
    return build
