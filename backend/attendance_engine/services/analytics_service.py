"""Attendance trends and insights over a rolling window."""
import calendar
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.services.report_service import (
    average_duration, count_status, group_by, percentage
)
from attendance_engine.utils.exceptions import ValidationError
from attendance_engine.utils.helpers import isoformat_utc

PERIODS = ('day', 'week', 'month', 'quarter')


def subtract_months(day: date, months: int) -> date:
    """Same day ``months`` earlier, clamped to the end of shorter months."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class AnalyticsService:
    """Builds trend lines and insights from attendance records."""

    @staticmethod
    def window(period: str, today: date) -> Tuple[date, date]:
        """Date range covered by ``period`` ending today."""
        if period == 'day':
            return today - timedelta(days=1), today
        if period == 'week':
            return today - timedelta(weeks=1), today
        if period == 'month':
            return subtract_months(today, 1), today
        if period == 'quarter':
            return subtract_months(today, 3), today
        raise ValidationError(f"Invalid period '{period}'. Use one of: {', '.join(PERIODS)}")

    @staticmethod
    def daily_trend(records: List[AttendanceRecord]) -> Dict[str, Dict]:
        trend = {}
        for day, day_records in group_by(records, 'date').items():
            present = count_status(day_records, AttendanceStatus.PRESENT)
            trend[day] = {
                'total': len(day_records),
                'present': present,
                'late': count_status(day_records, AttendanceStatus.LATE),
                'rate': percentage(present, len(day_records))
            }
        return trend

    @staticmethod
    def peak_day_insight(records: List[AttendanceRecord]) -> Optional[Dict]:
        """Day with the most records; the earliest such day wins a tie."""
        peak_date, peak_count = None, 0
        for day, day_records in group_by(records, 'date').items():
            if len(day_records) > peak_count:
                peak_date, peak_count = day, len(day_records)

        if peak_date is None:
            return None

        return {
            'type': 'peak_day',
            'message': f"Highest attendance was on {peak_date} with {peak_count} attendees",
            'value': peak_count,
            'date': peak_date
        }

    @staticmethod
    def late_trend_insight(records: List[AttendanceRecord]) -> Dict:
        late = count_status(records, AttendanceStatus.LATE)
        rate = percentage(late, len(records))
        return {
            'type': 'late_trend',
            'message': f"{rate:.2f}% of attendances were marked as late",
            'value': rate,
            'count': late
        }

    @staticmethod
    def token_usage_insight(records: List[AttendanceRecord]) -> Dict:
        used = sum(1 for r in records if r.token_used)
        rate = percentage(used, len(records))
        return {
            'type': 'token_usage',
            'message': f"{rate:.2f}% of check-ins used QR codes",
            'value': rate,
            'count': used
        }

    @staticmethod
    def insights(records: List[AttendanceRecord]) -> List[Dict]:
        insights = []
        peak = AnalyticsService.peak_day_insight(records)
        if peak:
            insights.append(peak)
        insights.append(AnalyticsService.late_trend_insight(records))
        insights.append(AnalyticsService.token_usage_insight(records))
        return insights

    @staticmethod
    def generate(records: List[AttendanceRecord], period: str, date_from: date,
                 date_to: date, generated_at: datetime) -> Dict:
        """Full analytics document for the window."""
        present = count_status(records, AttendanceStatus.PRESENT)

        return {
            'period': period,
            'date_range': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
            'overview': {
                'total_records': len(records),
                'unique_students': len({r.user_id for r in records}),
                'unique_classes': len({r.class_id for r in records}),
                'average_attendance_rate': percentage(present, len(records))
            },
            'trends': {
                'daily_attendance': AnalyticsService.daily_trend(records),
                'attendance_by_status': {
                    'present': present,
                    'late': count_status(records, AttendanceStatus.LATE),
                    'absent': count_status(records, AttendanceStatus.ABSENT)
                },
                'average_session_duration': average_duration(records)
            },
            'insights': AnalyticsService.insights(records),
            'generated_at': isoformat_utc(generated_at)
        }
