"""Admin authentication API."""
from flask import Blueprint, current_app, request
from flask_jwt_extended import get_jwt, jwt_required

from qr_attendance import limiter
from qr_attendance.services.auth_service import AuthService
from qr_attendance.utils.decorators import admin_required
from qr_attendance.utils.helpers import error_response, success_response

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('LOGIN_RATE_LIMIT', '5 per 15 minutes'))
def login():
    """Exchange the admin password for a bearer token."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return error_response("Request body must be JSON", 400)

    result, error = AuthService.login(data.get('password'))
    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Login successful")


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
@admin_required
def logout():
    AuthService.logout(get_jwt()['jti'])
    return success_response(message="Logged out successfully")


@auth_bp.route('/verify', methods=['GET'])
@jwt_required()
@admin_required
def verify():
    """Cheap check a client can use to see whether its token still works."""
    return success_response(data={'valid': True}, message="Token is valid")
