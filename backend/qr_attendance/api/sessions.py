"""Admin session management API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from qr_attendance.services.session_service import SessionService
from qr_attendance.utils.decorators import admin_required
from qr_attendance.utils.errors import ErrorKind
from qr_attendance.utils.helpers import error_response, service_error_response, success_response
from qr_attendance.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)

REQUIRED_FIELDS = ['name', 'date', 'startTime', 'endTime', 'sessionType']


@sessions_bp.route('', methods=['POST'])
@jwt_required()
@admin_required
def create_session():
    """Create a session and return its signed QR code."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return error_response("Request body must be JSON", 400)

    check = Validator.validate_required_fields(data, REQUIRED_FIELDS)
    if not check['is_valid']:
        return error_response(
            f"Missing required fields: {', '.join(check['missing'])}",
            400,
            code=ErrorKind.MISSING_FIELDS.code
        )

    result, error = SessionService.create_session(
        name=data['name'],
        date=data['date'],
        start_time=data['startTime'],
        end_time=data['endTime'],
        session_type=data['sessionType']
    )
    if error:
        return service_error_response(error)

    return success_response(data=result, message="Session created successfully", status_code=201)


@sessions_bp.route('', methods=['GET'])
@jwt_required()
@admin_required
def list_sessions():
    return success_response(data=SessionService.list_sessions())


@sessions_bp.route('/<session_id>', methods=['GET'])
@jwt_required()
@admin_required
def get_session(session_id):
    result, error = SessionService.get_session(session_id)
    if error:
        return service_error_response(error)
    return success_response(data=result)


@sessions_bp.route('/<session_id>/qr', methods=['GET'])
@jwt_required()
@admin_required
def get_session_qr(session_id):
    """Show an existing session's QR code again."""
    result, error = SessionService.get_qr(session_id)
    if error:
        return service_error_response(error)
    return success_response(data=result)


@sessions_bp.route('/<session_id>/end', methods=['POST'])
@jwt_required()
@admin_required
def end_session(session_id):
    result, error = SessionService.end_session(session_id)
    if error:
        return service_error_response(error)
    return success_response(data=result, message="Session ended successfully")


@sessions_bp.route('/<session_id>', methods=['PUT'])
@jwt_required()
@admin_required
def update_session(session_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Request body must be JSON", 400)

    result, error = SessionService.update_session(session_id, data)
    if error:
        return service_error_response(error)
    return success_response(data=result, message="Session updated successfully")


@sessions_bp.route('/<session_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_session(session_id):
    _, error = SessionService.delete_session(session_id)
    if error:
        return service_error_response(error)
    return success_response(message="Session and related attendance records deleted")
