"""Test the attendance store adapter."""
from datetime import date, datetime, timedelta

import pytest

from attendance_engine.models import (
    AttendanceRecord, AttendanceStatus, LifecycleStatus, uniqueness_key
)
from attendance_engine.services.attendance_store import decode_cursor, encode_cursor
from attendance_engine.utils.exceptions import Conflict, ValidationError


def make_record(user_id='student-1', class_id='c1', check_in=None, status=AttendanceStatus.PRESENT,
                **extra):
    check_in = check_in or datetime(2024, 3, 1, 9, 0)
    return AttendanceRecord(
        user_id=user_id,
        class_id=class_id,
        date=check_in.date().isoformat(),
        check_in_time=check_in,
        lifecycle_status=LifecycleStatus.CHECKED_IN,
        attendance_status=status,
        **extra
    )


def put(store, record):
    return store.put_if_absent(record, uniqueness_key(record.user_id, record.class_id, record.date))


def test_put_if_absent_and_get(store):
    record = put(store, make_record())

    loaded = store.get(record.id)
    assert loaded is not None
    assert loaded.active_key == 'student-1#c1#2024-03-01'
    assert store.get('unknown') is None


def test_put_if_absent_conflict(store):
    put(store, make_record())

    with pytest.raises(Conflict):
        put(store, make_record(check_in=datetime(2024, 3, 1, 9, 5)))

    assert AttendanceRecord.query.count() == 1


def test_key_released_after_clearing(store):
    record = put(store, make_record())
    store.update(record.id, {'lifecycle_status': LifecycleStatus.CHECKED_OUT, 'active_key': None})

    put(store, make_record(check_in=datetime(2024, 3, 1, 11, 0)))
    assert AttendanceRecord.query.count() == 2


def test_update_patch(store):
    record = put(store, make_record())

    updated = store.update(record.id, {
        'lifecycle_status': LifecycleStatus.CHECKED_OUT,
        'check_out_time': datetime(2024, 3, 1, 10, 0),
        'session_duration_minutes': 60
    })
    assert updated.lifecycle_status == LifecycleStatus.CHECKED_OUT
    assert updated.session_duration_minutes == 60


def test_update_missing_record(store):
    assert store.update('missing', {'session_duration_minutes': 1}) is None


def test_update_rejects_immutable_fields(store):
    record = put(store, make_record())

    with pytest.raises(ValueError):
        store.update(record.id, {'attendance_status': AttendanceStatus.LATE})


def test_range_queries_filter(store):
    put(store, make_record())
    put(store, make_record(user_id='student-2'))
    put(store, make_record(class_id='c2', course_code='CS305'))
    put(store, make_record(check_in=datetime(2024, 3, 5, 9, 0)))

    assert len(store.query_by_user_and_date_range('student-1', date(2024, 3, 1),
                                                  date(2024, 3, 1)).items) == 2
    assert len(store.query_by_class_and_date_range('c1', date(2024, 3, 1),
                                                   date(2024, 3, 31)).items) == 3
    assert len(store.query_by_date(date(2024, 3, 5)).items) == 1
    assert len(store.query_date_range(date(2024, 3, 1), date(2024, 3, 31),
                                      course_code='CS305').items) == 1
    assert len(store.query_date_range(date(2024, 3, 1), date(2024, 3, 31),
                                      class_id='c1', user_id='student-2').items) == 1


def test_pagination_visits_every_record_once(store):
    """Pages are newest first and the cursor never repeats or skips a record."""
    base = datetime(2024, 3, 1, 8, 0)
    for index in range(7):
        # Two records share each check-in instant to exercise the id tie-break
        put(store, make_record(user_id=f'student-{index}', check_in=base + timedelta(minutes=index // 2)))

    seen = []
    cursor = None
    pages = 0
    while True:
        page = store.query_by_date(date(2024, 3, 1), limit=3, cursor=cursor)
        seen.extend(page.items)
        pages += 1
        if page.cursor is None:
            break
        cursor = page.cursor

    assert pages == 3
    assert len({r.id for r in seen}) == 7
    keys = [(r.check_in_time, r.id) for r in seen]
    assert keys == sorted(keys, reverse=True)


def test_collect_drains_all_pages(store):
    for index in range(5):
        put(store, make_record(user_id=f'student-{index}'))

    records = store.collect(store.query_by_date, date(2024, 3, 1), limit=2)
    assert len(records) == 5


def test_exact_page_has_no_cursor(store):
    for index in range(2):
        put(store, make_record(user_id=f'student-{index}'))

    page = store.query_by_date(date(2024, 3, 1), limit=2)
    assert len(page.items) == 2
    assert page.cursor is None


def test_cursor_round_trip(store):
    record = put(store, make_record())
    assert decode_cursor(encode_cursor(record)) == (record.check_in_time, record.id)


def test_invalid_cursor(store):
    with pytest.raises(ValidationError):
        store.query_by_date(date(2024, 3, 1), limit=2, cursor='not-a-cursor')


def test_purge_expired(store):
    now = datetime(2025, 3, 1)
    put(store, make_record(expires_at=now - timedelta(days=1)))
    put(store, make_record(user_id='student-2', expires_at=now + timedelta(days=1)))
    put(store, make_record(user_id='student-3'))

    assert store.purge_expired(now=now) == 1
    assert AttendanceRecord.query.count() == 2
