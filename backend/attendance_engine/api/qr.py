"""QR code API endpoints."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from attendance_engine import limiter
from attendance_engine.services.providers import get_class_lookup, get_policy
from attendance_engine.services.qr_service import TokenService
from attendance_engine.utils.decorators import teacher_required
from attendance_engine.utils.exceptions import Forbidden, NotFound
from attendance_engine.utils.helpers import isoformat_utc, success_response
from attendance_engine.utils.identity import current_identity

qr_bp = Blueprint('qr', __name__)


@qr_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='QR service is running')


@qr_bp.route('/<class_id>', methods=['POST'])
@jwt_required()
@teacher_required
@limiter.limit("30 per hour")
def generate_qr(class_id):
    """Issue a signed QR token for class attendance."""
    identity = current_identity()

    class_info = get_class_lookup().get(class_id)
    if class_info is None:
        raise NotFound("Class not found")

    # Verify instructor owns this class
    if class_info.instructor_id != identity.user_id and not identity.is_admin():
        raise Forbidden("Unauthorized to generate QR code for this class")

    policy = get_policy()
    token = TokenService.issue(class_id, policy.token_validity_minutes, policy.token_secret)

    data = {
        'token': token.to_payload(),
        'qr_data': token.to_dict(),
        'expires_at': isoformat_utc(token.expires_at),
        'valid_for': policy.token_validity_minutes
    }
    if request.args.get('image', 'true').lower() != 'false':
        data['qr_image'] = TokenService.render_qr(token)

    return success_response(data=data, message="QR code generated successfully")
