"""Admin participant management API."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from qr_attendance.services.participant_service import ParticipantService
from qr_attendance.utils.decorators import admin_required
from qr_attendance.utils.errors import ErrorKind
from qr_attendance.utils.helpers import error_response, service_error_response, success_response
from qr_attendance.utils.validators import Validator

participants_bp = Blueprint('participants', __name__)


@participants_bp.route('', methods=['GET'])
@jwt_required()
@admin_required
def list_participants():
    return success_response(data=ParticipantService.list_participants())


@participants_bp.route('', methods=['POST'])
@jwt_required()
@admin_required
def create_participant():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return error_response("Request body must be JSON", 400)

    check = Validator.validate_required_fields(data, ['id', 'name', 'role'])
    if not check['is_valid']:
        return error_response(
            f"Missing required fields: {', '.join(check['missing'])}",
            400,
            code=ErrorKind.MISSING_FIELDS.code
        )

    result, error = ParticipantService.create_participant(data['id'], data['name'], data['role'])
    if error:
        return service_error_response(error)
    return success_response(data=result, message="Participant added successfully", status_code=201)


@participants_bp.route('/<participant_id>', methods=['GET'])
@jwt_required()
@admin_required
def get_participant(participant_id):
    result, error = ParticipantService.get_participant(participant_id)
    if error:
        return service_error_response(error)
    return success_response(data=result)


@participants_bp.route('/<participant_id>', methods=['PUT'])
@jwt_required()
@admin_required
def update_participant(participant_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Request body must be JSON", 400)

    result, error = ParticipantService.update_participant(participant_id, data)
    if error:
        return service_error_response(error)
    return success_response(data=result, message="Participant updated successfully")


@participants_bp.route('/<participant_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_participant(participant_id):
    _, error = ParticipantService.delete_participant(participant_id)
    if error:
        return service_error_response(error)
    return success_response(message="Participant and related attendance records deleted")
