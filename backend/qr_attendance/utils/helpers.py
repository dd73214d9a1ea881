"""Helper functions for the application."""
from flask import jsonify
from typing import Any

from qr_attendance.utils.errors import ServiceError


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': getattr(error, 'description', None) or str(error),
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, code: str = None, **extra):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if code:
        body['code'] = code
    body.update(extra)
    return jsonify(body), status_code


def service_error_response(error: ServiceError):
    """Translate a service-layer error into an error response."""
    return error_response(error.message, error.status_code, code=error.code)
