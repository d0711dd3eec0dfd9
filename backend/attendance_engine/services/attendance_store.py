"""Attendance store adapter over the relational database.

The store offers the keyed-store contract the attendance services rely on:
point reads, a conditional insert guarded by a uniqueness key, partial
updates and range queries paginated with an opaque continuation cursor.
Range queries return records newest first.
"""
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, OperationalError

from attendance_engine.models.attendance import AttendanceRecord
from attendance_engine.utils.exceptions import Conflict, Unavailable, ValidationError
from attendance_engine.utils.helpers import utcnow

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    'lifecycle_status', 'check_out_time', 'session_duration_minutes',
    'check_out_latitude', 'check_out_longitude', 'active_key'
}


@dataclass
class Page:
    """One page of records and the cursor for the next one (None when done)."""
    items: List[AttendanceRecord] = field(default_factory=list)
    cursor: Optional[str] = None


def encode_cursor(record: AttendanceRecord) -> str:
    raw = json.dumps([record.check_in_time.isoformat(), record.id]).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip('=')


def decode_cursor(cursor: str):
    padded = cursor + '=' * (-len(cursor) % 4)
    try:
        check_in, record_id = json.loads(base64.urlsafe_b64decode(padded.encode()))
        return datetime.fromisoformat(check_in), str(record_id)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValidationError("Invalid pagination cursor") from e


def _day(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


class AttendanceStore:
    """Keyed access to attendance records through a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def get(self, attendance_id: str) -> Optional[AttendanceRecord]:
        """Load one record by id."""
        try:
            return self.session.get(AttendanceRecord, attendance_id)
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Attendance store unreachable") from e

    def put_if_absent(self, record: AttendanceRecord, uniqueness_key: str) -> AttendanceRecord:
        """Insert ``record`` unless another record holds ``uniqueness_key``.

        Raises Conflict when the key is taken; the unique constraint on
        ``active_key`` makes this a single atomic write.
        """
        record.active_key = uniqueness_key
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise Conflict(f"Attendance key already in use: {uniqueness_key}") from e
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Attendance store unreachable") from e

        return record

    def update(self, attendance_id: str, patch: Dict[str, Any]) -> AttendanceRecord:
        """Apply ``patch`` to an existing record in one commit."""
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        record = self.get(attendance_id)
        if record is None:
            return None

        for key, value in patch.items():
            setattr(record, key, value)
        record.updated_at = utcnow()

        try:
            self.session.commit()
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Attendance store unreachable") from e

        return record

    def query_by_user_and_date_range(self, user_id: str, date_from, date_to,
                                     limit: int = None, cursor: str = None) -> Page:
        return self._page(
            [AttendanceRecord.user_id == user_id] + self._date_range(date_from, date_to),
            limit, cursor
        )

    def query_by_class_and_date_range(self, class_id: str, date_from, date_to,
                                      limit: int = None, cursor: str = None) -> Page:
        return self._page(
            [AttendanceRecord.class_id == class_id] + self._date_range(date_from, date_to),
            limit, cursor
        )

    def query_by_date(self, day, limit: int = None, cursor: str = None) -> Page:
        return self._page([AttendanceRecord.date == _day(day)], limit, cursor)

    def query_date_range(self, date_from, date_to, class_id: str = None,
                         course_code: str = None, user_id: str = None,
                         limit: int = None, cursor: str = None) -> Page:
        """Range scan with optional class, course and user filters."""
        conditions = self._date_range(date_from, date_to)
        if class_id:
            conditions.append(AttendanceRecord.class_id == class_id)
        if course_code:
            conditions.append(AttendanceRecord.course_code == course_code)
        if user_id:
            conditions.append(AttendanceRecord.user_id == user_id)
        return self._page(conditions, limit, cursor)

    @staticmethod
    def collect(query: Callable[..., Page], *args, **kwargs) -> List[AttendanceRecord]:
        """Drain every page of ``query`` into one list."""
        records = []
        cursor = None
        while True:
            page = query(*args, cursor=cursor, **kwargs)
            records.extend(page.items)
            if not page.cursor:
                return records
            cursor = page.cursor

    def purge_expired(self, now: datetime = None) -> int:
        """Delete records whose retention horizon has passed."""
        now = now or utcnow()
        try:
            deleted = self.session.query(AttendanceRecord).filter(
                AttendanceRecord.expires_at.isnot(None),
                AttendanceRecord.expires_at < now
            ).delete(synchronize_session=False)
            self.session.commit()
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Attendance store unreachable") from e

        logger.info("Purged %d expired attendance records", deleted)
        return deleted

    @staticmethod
    def _date_range(date_from, date_to) -> list:
        conditions = []
        if date_from is not None:
            conditions.append(AttendanceRecord.date >= _day(date_from))
        if date_to is not None:
            conditions.append(AttendanceRecord.date <= _day(date_to))
        return conditions

    def _page(self, conditions: list, limit: int = None, cursor: str = None) -> Page:
        query = self.session.query(AttendanceRecord).filter(*conditions)

        if cursor:
            check_in, record_id = decode_cursor(cursor)
            query = query.filter(or_(
                AttendanceRecord.check_in_time < check_in,
                and_(AttendanceRecord.check_in_time == check_in,
                     AttendanceRecord.id < record_id)
            ))

        query = query.order_by(AttendanceRecord.check_in_time.desc(), AttendanceRecord.id.desc())

        try:
            if limit is None:
                return Page(items=query.all())
            items = query.limit(limit + 1).all()
        except OperationalError as e:
            self.session.rollback()
            raise Unavailable("Attendance store unreachable") from e

        if len(items) > limit:
            items = items[:limit]
            return Page(items=items, cursor=encode_cursor(items[-1]))
        return Page(items=items)
