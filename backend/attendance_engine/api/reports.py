"""Reports and analytics API endpoints."""
from datetime import timedelta

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from attendance_engine.services.analytics_service import AnalyticsService
from attendance_engine.services.providers import get_report_service, get_store
from attendance_engine.services.report_service import PAGE_SIZE, Report
from attendance_engine.utils.decorators import teacher_required
from attendance_engine.utils.exceptions import FeatureDisabled, Forbidden, ValidationError
from attendance_engine.utils.helpers import success_response, today_in, utcnow
from attendance_engine.utils.identity import current_identity
from attendance_engine.utils.validators import Validator

reports_bp = Blueprint('reports', __name__)

FORMATS = ('json', 'csv')


def _requested_format() -> str:
    output_format = request.args.get('format', 'json').lower()
    if output_format not in FORMATS:
        raise ValidationError("format must be 'json' or 'csv'")
    if output_format == 'csv' and not current_app.config.get('ENABLE_CSV_EXPORT'):
        raise FeatureDisabled("CSV export not enabled")
    return output_format


def _csv_response(report: Report):
    return report.to_csv(), 200, {
        'Content-Type': 'text/csv; charset=utf-8',
        'Content-Disposition': f'attachment; filename="{report.csv_filename()}"'
    }


@reports_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Reports service is running')


@reports_bp.route('', methods=['GET'])
@jwt_required()
@teacher_required
def get_report():
    """Generate a summary, detailed, class or student report."""
    report_type = request.args.get('type', 'summary')
    output_format = _requested_format()
    config = current_app.config

    today = today_in(config['ATTENDANCE_TIMEZONE'])
    date_to = Validator.parse_date(request.args.get('to'), 'to') or today
    date_from = (Validator.parse_date(request.args.get('from'), 'from')
                 or date_to - timedelta(days=config['DEFAULT_REPORT_DAYS']))

    filters = {
        'class_id': request.args.get('class_id'),
        'course_code': request.args.get('course_code')
    }

    report = get_report_service().build(report_type, date_from, date_to, filters, utcnow())

    if output_format == 'csv':
        return _csv_response(report)

    return success_response(
        data={
            'report_type': report.kind,
            'date_range': report.date_range,
            'filters': filters,
            'report': report.to_dict()
        },
        message=f"{report.kind.title()} attendance report"
    )


@reports_bp.route('/daily', methods=['GET'])
@jwt_required()
@teacher_required
def daily_report():
    """Per-class attendance for one day."""
    output_format = _requested_format()
    day = (Validator.parse_date(request.args.get('date'))
           or today_in(current_app.config['ATTENDANCE_TIMEZONE']))

    report = get_report_service().daily_report(day, utcnow())

    if output_format == 'csv':
        return _csv_response(report)

    return success_response(data=report.to_dict(), message=f"Daily attendance report for {day}")


@reports_bp.route('/analytics', methods=['GET'])
@jwt_required()
def get_analytics():
    """Attendance trends and insights over a rolling window."""
    if not current_app.config.get('ENABLE_ANALYTICS'):
        raise FeatureDisabled("Analytics not enabled")

    period = request.args.get('period', 'week')
    filters = {
        'class_id': request.args.get('class_id'),
        'course_code': request.args.get('course_code'),
        'user_id': request.args.get('user_id')
    }

    # Students can only view their own analytics
    identity = current_identity()
    if not identity.is_staff() and filters['user_id'] != identity.user_id:
        raise Forbidden("Insufficient permissions to view analytics")

    date_from, date_to = AnalyticsService.window(
        period, today_in(current_app.config['ATTENDANCE_TIMEZONE'])
    )

    store = get_store()
    records = store.collect(store.query_date_range, date_from, date_to,
                            limit=PAGE_SIZE, **filters)
    analytics = AnalyticsService.generate(records, period, date_from, date_to, utcnow())

    return success_response(
        data={
            'period': period,
            'filters': filters,
            'analytics': analytics
        },
        message='Attendance analytics'
    )
