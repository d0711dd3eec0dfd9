"""Attendance record model."""
import uuid
from enum import Enum

from attendance_engine import db
from attendance_engine.models.base import BaseModel
from attendance_engine.utils.helpers import isoformat_utc


class LifecycleStatus(Enum):
    """Coarse presence state of one record."""
    CHECKED_IN = 'checked_in'
    CHECKED_OUT = 'checked_out'


class AttendanceStatus(Enum):
    """Timing classification, fixed at check-in."""
    PRESENT = 'present'
    LATE = 'late'
    ABSENT = 'absent'


def _enum_values(enum_class):
    return [member.value for member in enum_class]


def uniqueness_key(user_id: str, class_id: str, day: str) -> str:
    """Key that allows a single open session per user, class and day."""
    return f"{user_id}#{class_id}#{day}"


class AttendanceRecord(BaseModel):
    """One check-in attempt and, once closed, its check-out."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.Index('ix_attendance_user_date', 'user_id', 'date'),
        db.Index('ix_attendance_class_date', 'class_id', 'date'),
        db.Index('ix_attendance_date_checkin', 'date', 'check_in_time'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(128), nullable=False)
    class_id = db.Column(db.String(128), nullable=False)
    date = db.Column(db.String(10), nullable=False)

    check_in_time = db.Column(db.DateTime, nullable=False)
    check_out_time = db.Column(db.DateTime, nullable=True)

    lifecycle_status = db.Column(
        db.Enum(LifecycleStatus, values_callable=_enum_values, name='lifecycle_status'),
        nullable=False,
        default=LifecycleStatus.CHECKED_IN
    )
    attendance_status = db.Column(
        db.Enum(AttendanceStatus, values_callable=_enum_values, name='attendance_status'),
        nullable=False
    )
    session_duration_minutes = db.Column(db.Integer, nullable=True)

    # Location where check-in / check-out happened
    check_in_latitude = db.Column(db.Float, nullable=True)
    check_in_longitude = db.Column(db.Float, nullable=True)
    check_out_latitude = db.Column(db.Float, nullable=True)
    check_out_longitude = db.Column(db.Float, nullable=True)

    token_used = db.Column(db.Boolean, default=False, nullable=False)

    # Display fields copied at write time, not refreshed when the source changes
    user_name = db.Column(db.String(255), nullable=True)
    class_name = db.Column(db.String(255), nullable=True)
    course_code = db.Column(db.String(50), nullable=True)
    instructor_id = db.Column(db.String(128), nullable=True)

    # Set only while checked in; the unique constraint backs one open session
    active_key = db.Column(db.String(300), unique=True, nullable=True)

    expires_at = db.Column(db.DateTime, nullable=True)

    @property
    def location(self):
        if self.check_in_latitude is None or self.check_in_longitude is None:
            return None
        return {'latitude': self.check_in_latitude, 'longitude': self.check_in_longitude}

    @property
    def check_out_location(self):
        if self.check_out_latitude is None or self.check_out_longitude is None:
            return None
        return {'latitude': self.check_out_latitude, 'longitude': self.check_out_longitude}

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'attendance_id': self.id,
            'user_id': self.user_id,
            'user_name': self.user_name,
            'class_id': self.class_id,
            'class_name': self.class_name,
            'course_code': self.course_code,
            'instructor_id': self.instructor_id,
            'date': self.date,
            'check_in_time': isoformat_utc(self.check_in_time),
            'check_out_time': isoformat_utc(self.check_out_time),
            'lifecycle_status': self.lifecycle_status.value,
            'status': self.attendance_status.value,
            'session_duration_minutes': self.session_duration_minutes,
            'token_used': bool(self.token_used),
            'location': self.location,
            'check_out_location': self.check_out_location
        }

    def __repr__(self):
        return f'<AttendanceRecord {self.user_id}-{self.class_id}-{self.date}>'
