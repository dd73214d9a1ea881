"""Custom decorators for authorization."""
from functools import wraps
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from qr_attendance.utils.helpers import error_response

ADMIN_ROLE = 'admin'


def admin_required(f):
    """Decorator to require an admin bearer token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()

        if claims.get('role') != ADMIN_ROLE:
            return error_response("Unauthorized. Admin access required.", 403)

        return f(*args, **kwargs)
    return decorated_function
