"""Attendance marking: scan validation and the in/out state machine."""
import uuid
from datetime import datetime
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from qr_attendance.models import AttendanceRecord, AttendanceStatus
from qr_attendance.services.signature_service import SignatureService
from qr_attendance.services.store_service import StoreService
from qr_attendance.utils.errors import ErrorKind, ServiceError
from qr_attendance.utils.timeutils import ensure_utc, local_date, parse_iso, to_iso, utc_now
from qr_attendance.utils.validators import Validator

SCAN_FIELDS = ['sessionId', 'studentId', 'signature', 'expiryTime']
SESSION_FIELDS = ['sessionId', 'signature', 'expiryTime']

ACTION_IN = 'in'
ACTION_OUT = 'out'


def _reject(kind: ErrorKind, message: str, data: Dict) -> Tuple[None, ServiceError]:
    current_app.logger.warning(
        'Scan rejected (%s) session=%s student=%s: %s',
        kind.code, data.get('sessionId'), data.get('studentId'), message
    )
    return None, ServiceError(kind, message)


class AttendanceService:
    """Service for validating scans and recording attendance."""

    @staticmethod
    def _check_session(data: Dict, required, now: datetime):
        """Steps shared by the pre-check and the scan, up to an active session.

        Returns (session, error).
        """
        check = Validator.validate_required_fields(data, required)
        if not check['is_valid']:
            return _reject(
                ErrorKind.MISSING_FIELDS,
                f"Missing required fields: {', '.join(check['missing'])}",
                data or {}
            )

        session_id = data['sessionId']
        expiry_time = data['expiryTime']

        if not SignatureService.verify(session_id, expiry_time, data['signature']):
            return _reject(ErrorKind.INVALID_SIGNATURE, "Invalid QR code signature", data)

        try:
            expires_at = parse_iso(expiry_time)
        except ValueError:
            expires_at = None
        if expires_at is None or now > expires_at:
            return _reject(ErrorKind.EXPIRED, "QR code has expired", data)

        session = StoreService.get_session(session_id)
        if not session:
            return _reject(ErrorKind.SESSION_NOT_FOUND, "Session not found", data)

        if not session.is_active(now):
            return _reject(ErrorKind.SESSION_NOT_ACTIVE, "Session is not active", data)

        return session, None

    @staticmethod
    def verify_session(data: Dict, now: Optional[datetime] = None) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """Public pre-check of a scanned QR code, before asking for an ID."""
        now = ensure_utc(now) if now else utc_now()
        session, error = AttendanceService._check_session(data, SESSION_FIELDS, now)
        if error:
            return None, error

        return {
            'valid': True,
            'session': {
                'sessionId': session.session_id,
                'name': session.name,
                'expiryTime': session.expiry_iso
            }
        }, None

    @staticmethod
    def mark_attendance(data: Dict, now: Optional[datetime] = None) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """
        Record a scan: first valid scan checks in, second checks out.
        Returns: (record dict with action, error)
        """
        now = ensure_utc(now) if now else utc_now()
        session, error = AttendanceService._check_session(data, SCAN_FIELDS, now)
        if error:
            return None, error

        student_id = str(data['studentId']).strip()
        participant = StoreService.get_participant(student_id)
        if not participant:
            return _reject(ErrorKind.PARTICIPANT_NOT_FOUND, "Participant not found", data)

        if not session.accepts_role(participant.role):
            return _reject(
                ErrorKind.ROLE_MISMATCH,
                f"This session is for {session.session_type.value} participants only. "
                f"Your role: {participant.role.value}",
                data
            )

        record = StoreService.find_attendance(session.session_id, participant.id, lock=True)

        if record is None:
            return AttendanceService._check_in(session, participant, now, data)

        if record.in_time is None:
            return _reject(ErrorKind.MISSING_IN_TIME, "Attendance record has no check-in time", data)

        if record.out_time is not None:
            return _reject(
                ErrorKind.ALREADY_COMPLETED,
                "Attendance already completed for this session",
                data
            )

        error = StoreService.complete_attendance(record, now)
        if error:
            return _reject(error.kind, error.message, data)

        current_app.logger.info(
            'Check-out %s in %s at %s (%s min)',
            participant.id, session.session_id, to_iso(now), record.duration
        )
        return record.to_dict(action=ACTION_OUT), None

    @staticmethod
    def _check_in(session, participant, now: datetime, data: Dict):
        session_id = session.session_id
        student_id = participant.id
        record = AttendanceRecord(
            id=str(uuid.uuid4()),
            session_id=session_id,
            student_id=student_id,
            session_name=session.name,
            session_date=session.date,
            student_name=participant.name,
            student_role=participant.role.value,
            date=local_date(now, current_app.config.get('TIMEZONE', 'UTC')),
            in_time=now,
            out_time=None,
            duration=None,
            status=AttendanceStatus.PARTIAL
        )
        try:
            StoreService.add_attendance(record)
        except IntegrityError:
            return AttendanceService._explain_conflict(session_id, student_id, data)

        current_app.logger.info(
            'Check-in %s in %s at %s', student_id, session_id, to_iso(now)
        )
        return record.to_dict(action=ACTION_IN), None

    @staticmethod
    def _explain_conflict(session_id: str, student_id: str, data: Dict):
        """Name the reason a check-in insert failed after its rollback.

        The insert fails on the (session, participant) unique key when
        another scan committed first, or on a foreign key when the session
        or participant was deleted mid-scan.
        """
        if StoreService.get_session(session_id) is None:
            return _reject(ErrorKind.SESSION_NOT_FOUND, "Session not found", data)
        if StoreService.get_participant(student_id) is None:
            return _reject(ErrorKind.PARTICIPANT_NOT_FOUND, "Participant not found", data)
        if StoreService.find_attendance(session_id, student_id) is not None:
            return _reject(
                ErrorKind.ALREADY_COMPLETED,
                "Attendance is already being recorded for this session",
                data
            )
        return _reject(ErrorKind.CONFLICT, "Attendance could not be recorded, try again", data)
