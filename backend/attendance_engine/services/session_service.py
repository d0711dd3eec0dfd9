"""Check-in / check-out lifecycle of attendance records."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from attendance_engine.config import qr_secret_for
from attendance_engine.models.attendance import (
    AttendanceRecord, AttendanceStatus, LifecycleStatus, uniqueness_key
)
from attendance_engine.services.attendance_store import AttendanceStore
from attendance_engine.services.class_service import ClassSessionLookup
from attendance_engine.services.geofence_service import GeofenceService
from attendance_engine.services.notification_service import NotificationPublisher
from attendance_engine.services.qr_service import TokenService
from attendance_engine.utils.exceptions import (
    AlreadyCheckedIn, AlreadyCheckedOut, Conflict, Forbidden,
    InvalidTimestamp, InvalidToken, NotFound, OutOfRange
)
from attendance_engine.utils.helpers import isoformat_utc, local_date, utcnow
from attendance_engine.utils.identity import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendancePolicy:
    """Attendance rules injected into the session service."""
    grace_period_minutes: int = 10
    geofence_radius_meters: float = 100
    geofence_enabled: bool = True
    token_validity_minutes: int = 15
    token_secret: str = 'dev-qr-secret'
    timezone: str = 'UTC'
    record_retention_days: int = 365

    @classmethod
    def from_config(cls, config) -> 'AttendancePolicy':
        return cls(
            grace_period_minutes=int(config['GRACE_PERIOD_MINUTES']),
            geofence_radius_meters=config['GEOLOCATION_RADIUS_METERS'],
            geofence_enabled=bool(config['ENABLE_GEOLOCATION_VALIDATION']),
            token_validity_minutes=int(config['QR_CODE_EXPIRY_MINUTES']),
            token_secret=qr_secret_for(config),
            timezone=config['ATTENDANCE_TIMEZONE'],
            record_retention_days=int(config['RECORD_RETENTION_DAYS'])
        )


def classify_arrival(check_in_time: datetime, start_time: datetime,
                     grace_period_minutes: int) -> AttendanceStatus:
    """PRESENT up to and including the end of the grace period, LATE after."""
    if check_in_time <= start_time + timedelta(minutes=grace_period_minutes):
        return AttendanceStatus.PRESENT
    return AttendanceStatus.LATE


def session_duration_minutes(check_in_time: datetime, check_out_time: datetime) -> int:
    """Whole minutes between check-in and check-out, truncated."""
    elapsed = check_out_time - check_in_time
    if elapsed < timedelta(0):
        raise InvalidTimestamp("Check-out time is earlier than check-in time")
    return int(elapsed.total_seconds() // 60)


class AttendanceSessionService:
    """Owns every write to attendance records."""

    def __init__(self, policy: AttendancePolicy, store: AttendanceStore,
                 classes: ClassSessionLookup, notifier: NotificationPublisher,
                 clock: Callable[[], datetime] = None):
        self.policy = policy
        self.store = store
        self.classes = classes
        self.notifier = notifier
        self.clock = clock or utcnow

    def check_in(self, identity: Identity, class_id: str, token: Optional[str] = None,
                 location: Optional[Dict] = None, timestamp: Optional[datetime] = None) -> Dict:
        """Open an attendance session for the caller in ``class_id``."""
        check_in_time = timestamp or self.clock()

        class_info = self.classes.get(class_id)
        if class_info is None:
            raise NotFound("Class not found")

        if token and not TokenService.verify(
            token, class_id, self.policy.token_secret,
            now=self.clock(),
            max_validity=timedelta(minutes=self.policy.token_validity_minutes)
        ):
            logger.warning("Invalid QR code for class %s from user %s", class_id, identity.user_id)
            raise InvalidToken()

        if self.policy.geofence_enabled and location and class_info.location:
            result = GeofenceService.evaluate(
                location, class_info.location, self.policy.geofence_radius_meters
            )
            if not result.within_radius:
                logger.warning("User %s is %sm from class %s (allowed %sm)",
                               identity.user_id, result.distance_meters, class_id,
                               self.policy.geofence_radius_meters)
                raise OutOfRange(result.distance_meters, self.policy.geofence_radius_meters)

        day = local_date(check_in_time, self.policy.timezone).isoformat()
        if self._open_record(identity.user_id, class_id, day) is not None:
            raise AlreadyCheckedIn()

        status = classify_arrival(check_in_time, class_info.start_time,
                                  self.policy.grace_period_minutes)

        now = self.clock()
        record = AttendanceRecord(
            user_id=identity.user_id,
            class_id=class_id,
            date=day,
            check_in_time=check_in_time,
            lifecycle_status=LifecycleStatus.CHECKED_IN,
            attendance_status=status,
            check_in_latitude=location['latitude'] if location else None,
            check_in_longitude=location['longitude'] if location else None,
            token_used=bool(token),
            user_name=identity.display_name,
            class_name=class_info.name,
            course_code=class_info.course_code,
            instructor_id=class_info.instructor_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=self.policy.record_retention_days)
        )

        try:
            self.store.put_if_absent(record, uniqueness_key(identity.user_id, class_id, day))
        except Conflict:
            raise AlreadyCheckedIn()

        logger.info("User %s checked in to %s as %s", identity.user_id, class_id, status.value)

        self.notifier.publish({
            'type': 'check_in',
            'user_id': identity.user_id,
            'user_name': identity.display_name,
            'class_id': class_id,
            'class_name': class_info.name,
            'status': status.value,
            'timestamp': isoformat_utc(check_in_time)
        })

        late = status == AttendanceStatus.LATE
        return {
            'attendance_id': record.id,
            'status': status.value,
            'check_in_time': isoformat_utc(check_in_time),
            'message': f"Successfully checked in{' (marked as late)' if late else ''}"
        }

    def check_out(self, identity: Identity, attendance_id: str,
                  location: Optional[Dict] = None, timestamp: Optional[datetime] = None) -> Dict:
        """Close the caller's open session ``attendance_id``."""
        check_out_time = timestamp or self.clock()

        record = self.store.get(attendance_id)
        if record is None:
            raise NotFound("Attendance record not found")

        if record.user_id != identity.user_id:
            raise Forbidden("Unauthorized to modify this attendance record")

        if record.lifecycle_status == LifecycleStatus.CHECKED_OUT:
            raise AlreadyCheckedOut()

        duration = session_duration_minutes(record.check_in_time, check_out_time)

        patch = {
            'lifecycle_status': LifecycleStatus.CHECKED_OUT,
            'check_out_time': check_out_time,
            'session_duration_minutes': duration,
            'active_key': None
        }
        if location:
            patch['check_out_latitude'] = location['latitude']
            patch['check_out_longitude'] = location['longitude']

        record = self.store.update(attendance_id, patch)

        logger.info("User %s checked out of %s after %d minutes",
                    identity.user_id, record.class_id, duration)

        self.notifier.publish({
            'type': 'check_out',
            'user_id': identity.user_id,
            'user_name': identity.display_name,
            'class_id': record.class_id,
            'class_name': record.class_name,
            'session_duration_minutes': duration,
            'timestamp': isoformat_utc(check_out_time)
        })

        return {
            'attendance_id': attendance_id,
            'check_out_time': isoformat_utc(check_out_time),
            'session_duration_minutes': duration,
            'message': 'Successfully checked out'
        }

    def status(self, user_id: str, day=None) -> Dict:
        """Today's records for a user."""
        day = day or local_date(self.clock(), self.policy.timezone)
        records = self.store.query_by_user_and_date_range(user_id, day, day).items

        return {
            'user_id': user_id,
            'date': day.isoformat(),
            'attendance_records': [record.to_dict() for record in records],
            'total_sessions': len(records),
            'checked_in_sessions': sum(
                1 for record in records
                if record.lifecycle_status == LifecycleStatus.CHECKED_IN
            )
        }

    def history(self, user_id: str, date_from, date_to,
                limit: int = 50, cursor: str = None) -> Dict:
        """One page of a user's records, newest first, with a summary."""
        page = self.store.query_by_user_and_date_range(
            user_id, date_from, date_to, limit=limit, cursor=cursor
        )
        records = page.items
        durations = [r.session_duration_minutes for r in records
                     if r.session_duration_minutes is not None]

        return {
            'user_id': user_id,
            'date_range': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
            'attendance_history': [record.to_dict() for record in records],
            'summary': {
                'total_sessions': len(records),
                'present_count': _count(records, AttendanceStatus.PRESENT),
                'late_count': _count(records, AttendanceStatus.LATE),
                'absent_count': _count(records, AttendanceStatus.ABSENT),
                'average_session_duration': round(sum(durations) / len(durations), 2) if durations else 0
            },
            'cursor': page.cursor,
            'has_more': page.cursor is not None
        }

    def _open_record(self, user_id: str, class_id: str, day: str) -> Optional[AttendanceRecord]:
        records = self.store.query_by_user_and_date_range(user_id, day, day).items
        for record in records:
            if record.class_id == class_id and record.lifecycle_status == LifecycleStatus.CHECKED_IN:
                return record
        return None


def _count(records, status: AttendanceStatus) -> int:
    return sum(1 for record in records if record.attendance_status == status)
