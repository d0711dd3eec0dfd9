"""Attendance API endpoints: check-in, check-out, status and history."""
from datetime import timedelta

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from attendance_engine import limiter
from attendance_engine.services.providers import get_session_service
from attendance_engine.utils.exceptions import Forbidden, ValidationError
from attendance_engine.utils.helpers import success_response, today_in
from attendance_engine.utils.identity import current_identity
from attendance_engine.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _require(data: dict, fields: list) -> None:
    result = Validator.validate_required_fields(data, fields)
    if not result['is_valid']:
        raise ValidationError(result['errors'][0])


def _ensure_can_view(user_id: str) -> None:
    """Users see their own records; staff see everyone's."""
    identity = current_identity()
    if user_id != identity.user_id and not identity.is_staff():
        raise Forbidden("Unauthorized to view this user's attendance")


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/check-in', methods=['POST'])
@jwt_required()
@limiter.limit("30 per minute")
def check_in():
    """Check the caller in to a class."""
    data = _json_body()
    _require(data, ['class_id'])

    qr_code = data.get('qr_code')
    if qr_code is not None and not isinstance(qr_code, (str, dict)):
        raise ValidationError("qr_code must be a string or object")

    result = get_session_service().check_in(
        identity=current_identity(),
        class_id=str(data['class_id']),
        token=qr_code or None,
        location=Validator.parse_location(data.get('location')),
        timestamp=Validator.parse_timestamp(data.get('timestamp'))
    )

    return success_response(data=result, message=result.pop('message'))


@attendance_bp.route('/check-out', methods=['POST'])
@jwt_required()
@limiter.limit("30 per minute")
def check_out():
    """Check the caller out of an open attendance session."""
    data = _json_body()
    _require(data, ['attendance_id'])

    result = get_session_service().check_out(
        identity=current_identity(),
        attendance_id=str(data['attendance_id']),
        location=Validator.parse_location(data.get('location')),
        timestamp=Validator.parse_timestamp(data.get('timestamp'))
    )

    return success_response(data=result, message=result.pop('message'))


@attendance_bp.route('/status/<user_id>', methods=['GET'])
@jwt_required()
def get_status(user_id):
    """Today's attendance records for a user."""
    _ensure_can_view(user_id)

    result = get_session_service().status(user_id)
    return success_response(data=result, message='Attendance status retrieved')


@attendance_bp.route('/history/<user_id>', methods=['GET'])
@jwt_required()
def get_history(user_id):
    """Paginated attendance history for a user, newest first."""
    _ensure_can_view(user_id)

    service = get_session_service()
    config = current_app.config
    today = today_in(config['ATTENDANCE_TIMEZONE'])

    date_to = Validator.parse_date(request.args.get('to'), 'to') or today
    date_from = (Validator.parse_date(request.args.get('from'), 'from')
                 or date_to - timedelta(days=config['DEFAULT_HISTORY_DAYS']))
    if date_from > date_to:
        raise ValidationError("'from' must not be after 'to'")

    limit = Validator.parse_limit(request.args.get('limit'),
                                  config['DEFAULT_PAGE_SIZE'], config['MAX_PAGE_SIZE'])

    result = service.history(user_id, date_from, date_to,
                             limit=limit, cursor=request.args.get('cursor'))
    return success_response(data=result, message='Attendance history retrieved')
