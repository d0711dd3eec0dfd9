"""Test attendance analytics and insights."""
from datetime import date, datetime

import pytest

from attendance_engine.models import AttendanceRecord, AttendanceStatus, LifecycleStatus
from attendance_engine.services.analytics_service import AnalyticsService, subtract_months
from attendance_engine.utils.exceptions import ValidationError


def record(user_id, day, status=AttendanceStatus.PRESENT, token_used=False, duration=None,
           class_id='c1'):
    return AttendanceRecord(
        id=f'{user_id}-{day}-{class_id}',
        user_id=user_id,
        class_id=class_id,
        date=day,
        check_in_time=datetime.fromisoformat(f'{day}T09:00:00'),
        lifecycle_status=LifecycleStatus.CHECKED_IN,
        attendance_status=status,
        session_duration_minutes=duration,
        token_used=token_used
    )


@pytest.mark.parametrize('period, expected_from', [
    ('day', date(2024, 3, 30)),
    ('week', date(2024, 3, 24)),
    ('month', date(2024, 2, 29)),
    ('quarter', date(2023, 12, 31)),
])
def test_window(period, expected_from):
    assert AnalyticsService.window(period, date(2024, 3, 31)) == (expected_from, date(2024, 3, 31))


def test_window_rejects_unknown_period():
    with pytest.raises(ValidationError):
        AnalyticsService.window('year', date(2024, 3, 31))


def test_subtract_months_crosses_year():
    assert subtract_months(date(2024, 1, 15), 1) == date(2023, 12, 15)
    assert subtract_months(date(2024, 5, 31), 3) == date(2024, 2, 29)


def test_peak_day_tie_goes_to_earliest():
    records = [
        record('a', '2024-03-02'), record('b', '2024-03-02'),
        record('a', '2024-03-01'), record('b', '2024-03-01'),
        record('a', '2024-03-03'),
    ]
    insight = AnalyticsService.peak_day_insight(records)
    assert insight['date'] == '2024-03-01'
    assert insight['value'] == 2
    assert insight['message'] == 'Highest attendance was on 2024-03-01 with 2 attendees'


def test_insights_without_records():
    insights = AnalyticsService.insights([])
    assert [i['type'] for i in insights] == ['late_trend', 'token_usage']
    assert all(i['value'] == 0.0 for i in insights)


def test_generate():
    records = [
        record('a', '2024-03-01', token_used=True, duration=50),
        record('b', '2024-03-01', AttendanceStatus.LATE, duration=30),
        record('a', '2024-03-02', AttendanceStatus.LATE, token_used=True),
        record('c', '2024-03-02', class_id='c2'),
    ]

    result = AnalyticsService.generate(records, 'week', date(2024, 2, 25), date(2024, 3, 3),
                                       datetime(2024, 3, 3, 18, 0))

    assert result['overview'] == {
        'total_records': 4,
        'unique_students': 3,
        'unique_classes': 2,
        'average_attendance_rate': 50.0
    }
    assert result['trends']['daily_attendance']['2024-03-01'] == {
        'total': 2, 'present': 1, 'late': 1, 'rate': 50.0
    }
    assert result['trends']['attendance_by_status'] == {'present': 2, 'late': 2, 'absent': 0}
    assert result['trends']['average_session_duration'] == 40.0
    assert result['generated_at'] == '2024-03-03T18:00:00Z'

    insights = {i['type']: i for i in result['insights']}
    assert set(insights) == {'peak_day', 'late_trend', 'token_usage'}
    assert insights['late_trend']['message'] == '50.00% of attendances were marked as late'
    assert insights['token_usage']['count'] == 2
    assert insights['token_usage']['message'] == '50.00% of check-ins used QR codes'
