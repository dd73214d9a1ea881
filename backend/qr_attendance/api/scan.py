"""Public scanning endpoints: QR pre-check and attendance marking."""
from flask import Blueprint, request

from qr_attendance.services.attendance_service import AttendanceService
from qr_attendance.services.qr_service import QRService
from qr_attendance.utils.helpers import error_response, service_error_response, success_response

scan_bp = Blueprint('scan', __name__)


def _scan_payload():
    """JSON body, with a raw ``qrData`` string unpacked into its fields.

    Returns: (payload, error_message)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, "Request body must be JSON"

    qr_data = data.get('qrData')
    if isinstance(qr_data, str):
        fields, error = QRService.parse_payload(qr_data)
        if error:
            return None, error
        merged = {key: value for key, value in data.items() if key != 'qrData'}
        merged.update(fields)
        return merged, None

    return data, None


@scan_bp.route('/verify-session', methods=['POST'])
def verify_session():
    """Check a scanned QR code before asking for a participant ID."""
    data, message = _scan_payload()
    if message:
        return error_response(message, 400)

    result, error = AttendanceService.verify_session(data)
    if error:
        return service_error_response(error)

    return success_response(data=result, message="Session is valid")


@scan_bp.route('/mark-attendance', methods=['POST'])
def mark_attendance():
    """Check in on the first valid scan, check out on the second."""
    data, message = _scan_payload()
    if message:
        return error_response(message, 400)

    result, error = AttendanceService.mark_attendance(data)
    if error:
        return service_error_response(error)

    if result['action'] == 'in':
        message = f"Welcome {result['studentName']}! Check-in recorded."
    else:
        message = f"Goodbye {result['studentName']}! Check-out recorded ({result['duration']} min)."
    return success_response(data=result, message=message)
