"""Attendance report aggregation and CSV export.

Each report kind is its own class built from a list of attendance records.
Aggregation is pure: the same records and ``generated_at`` always give the
same report, and every grouping is emitted in key order.
"""
import io
import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Type

import pandas as pd

from attendance_engine.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_engine.models.class_session import ClassSession
from attendance_engine.services.attendance_store import AttendanceStore
from attendance_engine.services.class_service import ClassSessionLookup
from attendance_engine.utils.exceptions import NotFound, ReportTypeInvalid, ValidationError
from attendance_engine.utils.helpers import isoformat_utc

logger = logging.getLogger(__name__)

PAGE_SIZE = 500


def percentage(part: int, total: int) -> float:
    """``part / total * 100`` rounded to two decimals, 0 when total is 0."""
    if total == 0:
        return 0.0
    return round(part / total * 100, 2)


def average_duration(records: Iterable[AttendanceRecord]) -> float:
    """Mean session duration over records that have one."""
    durations = [r.session_duration_minutes for r in records
                 if r.session_duration_minutes is not None]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 2)


def count_status(records: Iterable[AttendanceRecord], status: AttendanceStatus) -> int:
    return sum(1 for r in records if r.attendance_status == status)


def group_by(records: Iterable[AttendanceRecord], attribute: str) -> Dict[str, List[AttendanceRecord]]:
    groups = defaultdict(list)
    for record in records:
        groups[getattr(record, attribute)].append(record)
    return {key: groups[key] for key in sorted(groups)}


def tally(records: List[AttendanceRecord]) -> Dict:
    """Attendee, present and late counts with the on-time rate."""
    present = count_status(records, AttendanceStatus.PRESENT)
    return {
        'total_attendees': len(records),
        'present_count': present,
        'late_count': count_status(records, AttendanceStatus.LATE),
        'attendance_rate': percentage(present, len(records))
    }


def student_stats(records: List[AttendanceRecord]) -> Dict:
    """Per-student counts; present and late both count as attended."""
    present = count_status(records, AttendanceStatus.PRESENT)
    late = count_status(records, AttendanceStatus.LATE)
    return {
        'user_name': records[0].user_name,
        'total_sessions': len(records),
        'present_count': present,
        'late_count': late,
        'attendance_rate': percentage(present + late, len(records)),
        'average_session_duration': average_duration(records)
    }


def _csv_value(value) -> str:
    # Cells go out as text so pandas never re-types a column
    if value is None:
        return ''
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


class Report:
    """Shared shape of every report kind."""

    kind: str = None
    csv_fields: tuple = ()

    def __init__(self, generated_at: datetime):
        self.generated_at = generated_at

    def to_dict(self) -> Dict:
        raise NotImplementedError

    def csv_rows(self) -> List[Dict]:
        raise NotImplementedError

    def to_csv(self) -> str:
        """Flatten the report into CSV using its fixed field list."""
        rows = [{field: _csv_value(row.get(field)) for field in self.csv_fields}
                for row in self.csv_rows()]
        frame = pd.DataFrame(rows, columns=list(self.csv_fields), dtype=object)
        output = io.StringIO()
        frame.to_csv(output, index=False, lineterminator='\n')
        return output.getvalue()

    def csv_filename(self) -> str:
        return f"attendance-report-{self.kind}.csv"


class RangeReport(Report):
    """Report over a date range with optional filters."""

    def __init__(self, date_from: date, date_to: date, filters: Optional[Dict],
                 generated_at: datetime):
        super().__init__(generated_at)
        self.date_from = date_from
        self.date_to = date_to
        self.filters = {k: v for k, v in (filters or {}).items() if v}

    @property
    def date_range(self) -> Dict:
        return {'from': self.date_from.isoformat(), 'to': self.date_to.isoformat()}

    def csv_filename(self) -> str:
        return (f"attendance-report-{self.kind}-"
                f"{self.date_from.isoformat()}-to-{self.date_to.isoformat()}.csv")


class DailyReport(Report):
    """Per-class attendance for one day."""

    kind = 'daily'
    csv_fields = ('class_id', 'class_name', 'course_code', 'total_attendees',
                  'present_count', 'late_count', 'attendance_rate')

    def __init__(self, day: date, records: List[AttendanceRecord],
                 classes: Dict[str, ClassSession], generated_at: datetime):
        super().__init__(generated_at)
        self.day = day
        self.total_attendees = len(records)
        self.class_summary = {}

        for class_id, class_records in group_by(records, 'class_id').items():
            info = classes.get(class_id)
            self.class_summary[class_id] = {
                'class_name': info.name if info else (class_records[0].class_name or 'Unknown Class'),
                'course_code': info.course_code if info else (class_records[0].course_code or 'Unknown'),
                **tally(class_records)
            }

    @property
    def summary(self) -> Dict:
        rates = [entry['attendance_rate'] for entry in self.class_summary.values()]
        return {
            'total_classes': len(self.class_summary),
            'total_attendees': self.total_attendees,
            'average_attendance_rate': round(sum(rates) / len(rates), 2) if rates else 0.0
        }

    def to_dict(self) -> Dict:
        return {
            'report_type': self.kind,
            'date': self.day.isoformat(),
            'summary': self.summary,
            'class_summary': self.class_summary,
            'generated_at': isoformat_utc(self.generated_at)
        }

    def csv_rows(self) -> List[Dict]:
        return [{'class_id': class_id, **stats} for class_id, stats in self.class_summary.items()]

    def csv_filename(self) -> str:
        return f"attendance-report-daily-{self.day.isoformat()}.csv"


class SummaryReport(RangeReport):
    """Overall counts plus a per-day breakdown.

    ``absent_count`` only counts records written as absent. Check-in never
    writes one, so from this data source it is always 0.
    """

    kind = 'summary'
    csv_fields = ('date', 'total_attendees', 'present_count', 'late_count', 'attendance_rate')

    def __init__(self, records: List[AttendanceRecord], date_from: date, date_to: date,
                 filters: Optional[Dict], generated_at: datetime):
        super().__init__(date_from, date_to, filters, generated_at)
        self.summary = {
            'total_records': len(records),
            'unique_students': len({r.user_id for r in records}),
            'unique_classes': len({r.class_id for r in records}),
            'present_count': count_status(records, AttendanceStatus.PRESENT),
            'late_count': count_status(records, AttendanceStatus.LATE),
            'absent_count': count_status(records, AttendanceStatus.ABSENT),
            'average_session_duration': average_duration(records)
        }
        self.daily_breakdown = {
            day: tally(day_records) for day, day_records in group_by(records, 'date').items()
        }

    def to_dict(self) -> Dict:
        return {
            'report_type': self.kind,
            'date_range': self.date_range,
            'filters': self.filters,
            'summary': self.summary,
            'daily_breakdown': self.daily_breakdown,
            'generated_at': isoformat_utc(self.generated_at)
        }

    def csv_rows(self) -> List[Dict]:
        return [{'date': day, **stats} for day, stats in self.daily_breakdown.items()]


class DetailedReport(RangeReport):
    """Every record in the range, newest first."""

    kind = 'detailed'
    csv_fields = ('attendance_id', 'user_id', 'user_name', 'class_id', 'class_name',
                  'course_code', 'date', 'check_in_time', 'check_out_time', 'status',
                  'session_duration_minutes', 'token_used')

    def __init__(self, records: List[AttendanceRecord], date_from: date, date_to: date,
                 filters: Optional[Dict], generated_at: datetime):
        super().__init__(date_from, date_to, filters, generated_at)
        ordered = sorted(records, key=lambda r: (r.check_in_time, r.id), reverse=True)
        self.records = [record.to_dict() for record in ordered]

    def to_dict(self) -> Dict:
        return {
            'report_type': self.kind,
            'date_range': self.date_range,
            'filters': self.filters,
            'total_records': len(self.records),
            'attendance_records': self.records,
            'generated_at': isoformat_utc(self.generated_at)
        }

    def csv_rows(self) -> List[Dict]:
        return self.records


class ClassReport(RangeReport):
    """Per-student attendance within one class."""

    kind = 'class'
    csv_fields = ('user_id', 'user_name', 'total_sessions', 'present_count', 'late_count',
                  'attendance_rate', 'average_session_duration')

    def __init__(self, records: List[AttendanceRecord], class_info: ClassSession,
                 date_from: date, date_to: date, generated_at: datetime):
        super().__init__(date_from, date_to, {'class_id': class_info.class_id}, generated_at)
        self.class_info = {
            'class_id': class_info.class_id,
            'class_name': class_info.name,
            'course_code': class_info.course_code,
            'instructor_id': class_info.instructor_id
        }
        self.total_sessions = len(records)
        self.student_summary = {
            user_id: student_stats(user_records)
            for user_id, user_records in group_by(records, 'user_id').items()
        }

    def to_dict(self) -> Dict:
        rates = [s['attendance_rate'] for s in self.student_summary.values()]
        return {
            'report_type': self.kind,
            'class_info': self.class_info,
            'date_range': self.date_range,
            'summary': {
                'total_sessions': self.total_sessions,
                'unique_students': len(self.student_summary),
                'average_attendance_rate': round(sum(rates) / len(rates), 2) if rates else 0.0
            },
            'student_summary': self.student_summary,
            'generated_at': isoformat_utc(self.generated_at)
        }

    def csv_rows(self) -> List[Dict]:
        return [{'user_id': user_id, **stats} for user_id, stats in self.student_summary.items()]


class StudentReport(RangeReport):
    """Per-student attendance across classes with a date-keyed breakdown."""

    kind = 'student'
    csv_fields = ClassReport.csv_fields

    def __init__(self, records: List[AttendanceRecord], date_from: date, date_to: date,
                 filters: Optional[Dict], generated_at: datetime):
        super().__init__(date_from, date_to, filters, generated_at)
        self.student_reports = {}
        for user_id, user_records in group_by(records, 'user_id').items():
            self.student_reports[user_id] = {
                **student_stats(user_records),
                'classes_by_date': {
                    day: [r.to_dict() for r in day_records]
                    for day, day_records in group_by(user_records, 'date').items()
                }
            }

    def to_dict(self) -> Dict:
        return {
            'report_type': self.kind,
            'date_range': self.date_range,
            'filters': self.filters,
            'total_students': len(self.student_reports),
            'student_reports': self.student_reports,
            'generated_at': isoformat_utc(self.generated_at)
        }

    def csv_rows(self) -> List[Dict]:
        return [{'user_id': user_id, **stats} for user_id, stats in self.student_reports.items()]


REPORT_KINDS: Dict[str, Type[RangeReport]] = {
    report.kind: report for report in (SummaryReport, DetailedReport, ClassReport, StudentReport)
}


def report_class(kind: str) -> Type[RangeReport]:
    """Resolve a requested report kind."""
    try:
        return REPORT_KINDS[kind]
    except KeyError:
        raise ReportTypeInvalid(
            f"Invalid report type '{kind}'. Use one of: {', '.join(sorted(REPORT_KINDS))}"
        )


class ReportService:
    """Fetches records through the store and builds reports from them."""

    def __init__(self, store: AttendanceStore, classes: ClassSessionLookup):
        self.store = store
        self.classes = classes

    def daily_report(self, day: date, generated_at: datetime) -> DailyReport:
        """Per-class report over every record of the day, open or closed.

        Closed sessions count too, unlike a report over checked-in records only.
        """
        records = self.store.collect(self.store.query_by_date, day, limit=PAGE_SIZE)
        classes = self.classes.get_many(r.class_id for r in records)
        return DailyReport(day, records, classes, generated_at)

    def build(self, kind: str, date_from: date, date_to: date,
              filters: Optional[Dict], generated_at: datetime) -> RangeReport:
        """Build the report of ``kind`` for the range and filters."""
        report = report_class(kind)
        filters = filters or {}

        if date_from > date_to:
            raise ValidationError("'from' must not be after 'to'")

        if report is ClassReport:
            class_id = filters.get('class_id')
            if not class_id:
                raise ValidationError("class_id is required for class reports")
            class_info = self.classes.get(class_id)
            if class_info is None:
                raise NotFound("Class not found")
            records = self.store.collect(
                self.store.query_by_class_and_date_range, class_id, date_from, date_to,
                limit=PAGE_SIZE
            )
            return ClassReport(records, class_info, date_from, date_to, generated_at)

        records = self.store.collect(
            self.store.query_date_range, date_from, date_to,
            class_id=filters.get('class_id'), course_code=filters.get('course_code'),
            limit=PAGE_SIZE
        )
        logger.debug("Building %s report over %d records", kind, len(records))
        return report(records, date_from, date_to, filters, generated_at)
