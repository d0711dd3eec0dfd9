"""Custom decorators for authorization."""
from functools import wraps

from attendance_engine.utils.helpers import error_response
from attendance_engine.utils.identity import STAFF_ROLES, current_identity


def roles_required(*roles: str, message: str = "Insufficient permissions"):
    """Decorator to require one of the given roles."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            identity = current_identity()

            if not identity.has_role(*roles):
                return error_response(message, 403)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def teacher_required(f):
    """Decorator to require teacher role or higher."""
    return roles_required(*STAFF_ROLES, message="Teacher access required")(f)
