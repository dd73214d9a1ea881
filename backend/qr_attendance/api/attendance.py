"""Admin attendance records, reports and export."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from qr_attendance.services.report_service import ReportService
from qr_attendance.services.store_service import AttendanceFilters, AttendanceUpdate, StoreService
from qr_attendance.utils.decorators import admin_required
from qr_attendance.utils.errors import ErrorKind
from qr_attendance.utils.helpers import error_response, service_error_response, success_response
from qr_attendance.utils.timeutils import utc_now

attendance_bp = Blueprint('attendance', __name__)


@attendance_bp.route('', methods=['GET'])
@jwt_required()
@admin_required
def list_attendance():
    """Attendance records, filtered by startDate, endDate, studentId, sessionId, role and name."""
    filters, error = AttendanceFilters.from_args(request.args)
    if error:
        return service_error_response(error)

    records = StoreService.get_attendance(filters)
    return success_response(data=[r.to_dict() for r in records])


@attendance_bp.route('/session/<session_id>', methods=['GET'])
@jwt_required()
@admin_required
def session_attendance(session_id):
    if not StoreService.get_session(session_id):
        return error_response("Session not found", 404, code=ErrorKind.SESSION_NOT_FOUND.code)

    records = StoreService.get_attendance(AttendanceFilters(session_id=session_id))
    return success_response(data=[r.to_dict() for r in records])


@attendance_bp.route('/spreadsheet', methods=['GET'])
@jwt_required()
@admin_required
def spreadsheet():
    """Participant x session grid of Present / Partial / Absent."""
    filters, error = AttendanceFilters.from_args(request.args)
    if error:
        return service_error_response(error)
    return success_response(data=ReportService.spreadsheet(filters))


@attendance_bp.route('/analytics', methods=['GET'])
@jwt_required()
@admin_required
def analytics():
    return success_response(data=ReportService.analytics())


@attendance_bp.route('/export/csv', methods=['GET'])
@jwt_required()
@admin_required
def export_csv():
    filters, error = AttendanceFilters.from_args(request.args)
    if error:
        return service_error_response(error)

    filename = f"attendance_{utc_now().strftime('%Y%m%d')}.csv"
    return ReportService.export_csv(filters), 200, {
        'Content-Type': 'text/csv; charset=utf-8',
        'Content-Disposition': f'attachment; filename={filename}'
    }


@attendance_bp.route('/<attendance_id>', methods=['PUT'])
@jwt_required()
@admin_required
def update_attendance(attendance_id):
    """Edit inTime / outTime. Duration and status are recomputed."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Request body must be JSON", 400)

    changes, error = AttendanceUpdate.from_dict(data)
    if error:
        return service_error_response(error)

    record, error = StoreService.update_attendance(attendance_id, changes)
    if error:
        return service_error_response(error)
    return success_response(data=record.to_dict(), message="Attendance updated successfully")


@attendance_bp.route('/<attendance_id>', methods=['DELETE'])
@jwt_required()
@admin_required
def delete_attendance(attendance_id):
    if not StoreService.delete_attendance(attendance_id):
        return error_response("Attendance record not found", 404, code=ErrorKind.NOT_FOUND.code)
    return success_response(message="Attendance record deleted")
