"""Session lifecycle: create, end, update and delete signed sessions."""
import secrets
import string
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from qr_attendance.models import AttendanceSession, SessionStatus, SessionType
from qr_attendance.services.qr_service import QRService
from qr_attendance.services.signature_service import SignatureService
from qr_attendance.services.store_service import StoreService
from qr_attendance.utils.errors import ErrorKind, ServiceError
from qr_attendance.utils.timeutils import (
    combine_local, parse_clock_time, parse_date, to_iso, utc_now
)
from qr_attendance.utils.validators import Validator

ID_ALPHABET = string.digits + string.ascii_lowercase
SESSION_TYPE_CHOICES = ', '.join(t.value for t in SessionType)


def generate_session_id(now: Optional[datetime] = None) -> str:
    """``SESSION_<epoch ms>_<9 base36 chars>``."""
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    suffix = ''.join(secrets.choice(ID_ALPHABET) for _ in range(9))
    return f'SESSION_{millis}_{suffix}'


class SessionService:
    """Service for managing attendance sessions."""

    MUTABLE_FIELDS = ('name', 'sessionType')

    @staticmethod
    def create_session(
        name: str,
        date: str,
        start_time: str,
        end_time: str,
        session_type: str,
        now: Optional[datetime] = None
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """
        Create a new session with its signed QR payload.
        Returns: (result, error)
        """
        check = Validator.validate_name(name, 200, 'Session name')
        if not check['is_valid']:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        try:
            session_date = parse_date(date)
        except (AttributeError, ValueError):
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "Date must be YYYY-MM-DD")

        try:
            start_clock = parse_clock_time(start_time)
            end_clock = parse_clock_time(end_time)
        except (AttributeError, ValueError):
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "Times must be HH:MM")

        try:
            kind = SessionType(session_type)
        except ValueError:
            return None, ServiceError(
                ErrorKind.VALIDATION_ERROR,
                f"Session type must be one of: {SESSION_TYPE_CHOICES}"
            )

        zone = current_app.config.get('TIMEZONE', 'UTC')
        try:
            start_at = combine_local(session_date, start_clock, zone)
            end_at = combine_local(session_date, end_clock, zone)
        except ValueError as e:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, str(e))

        if end_at <= start_at:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "End time must be after start time")

        expiry_iso = to_iso(end_at)
        attempts = max(1, int(current_app.config.get('SESSION_ID_MAX_ATTEMPTS', 3)))
        session = None

        for attempt in range(1, attempts + 1):
            session_id = generate_session_id(now)
            candidate = AttendanceSession(
                session_id=session_id,
                name=name.strip(),
                date=session_date,
                start_time=start_clock,
                end_time=end_clock,
                start_datetime=start_at,
                end_datetime=end_at,
                expiry_time=end_at,
                session_type=kind,
                status=SessionStatus.ACTIVE,
                signature=SignatureService.sign(session_id, expiry_iso)
            )
            try:
                session = StoreService.add_session(candidate)
                break
            except IntegrityError:
                current_app.logger.warning(
                    'Session id collision on %s (attempt %d of %d)', session_id, attempt, attempts
                )

        if session is None:
            return None, ServiceError(
                ErrorKind.CONFLICT, "Could not allocate a unique session id, try again"
            )

        current_app.logger.info(
            'Session %s created (%s, expires %s)', session.session_id, kind.value, expiry_iso
        )

        qr_data = SessionService.qr_payload(session)
        result = {
            'session': session.to_dict(now),
            'qrData': qr_data
        }
        qr_code = QRService.try_render_image(qr_data)
        if qr_code:
            result['qrCode'] = qr_code

        return result, None

    @staticmethod
    def qr_payload(session: AttendanceSession) -> str:
        """The exact string a client scans for this session."""
        return QRService.build_payload(session.session_id, session.expiry_iso, session.signature)

    @staticmethod
    def get_qr(session_id: str) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """Payload and image for an existing session."""
        session = StoreService.get_session(session_id)
        if not session:
            return None, ServiceError(ErrorKind.SESSION_NOT_FOUND, "Session not found")

        qr_data = SessionService.qr_payload(session)
        result = {'sessionId': session.session_id, 'qrData': qr_data}
        qr_code = QRService.try_render_image(qr_data)
        if qr_code:
            result['qrCode'] = qr_code
        return result, None

    @staticmethod
    def is_active(session: AttendanceSession, now: Optional[datetime] = None) -> bool:
        return session.is_active(now)

    @staticmethod
    def end_session(
        session_id: str,
        now: Optional[datetime] = None
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """End a session. Ending an ended session changes nothing."""
        session = StoreService.get_session(session_id)
        if not session:
            return None, ServiceError(ErrorKind.SESSION_NOT_FOUND, "Session not found")

        if session.status != SessionStatus.ENDED:
            session.status = SessionStatus.ENDED
            session.ended_at = now or utc_now()
            StoreService.commit()
            current_app.logger.info('Session %s ended', session_id)

        return session.to_dict(now), None

    @staticmethod
    def end_expired_sessions(now: Optional[datetime] = None) -> int:
        """Mark every active session past its expiry as ended."""
        now = now or utc_now()
        ended = 0
        for session in StoreService.active_sessions():
            if session.is_expired(now):
                session.status = SessionStatus.ENDED
                session.ended_at = now
                ended += 1

        if ended:
            StoreService.commit()
            current_app.logger.info('Ended %d expired sessions', ended)
        return ended

    @staticmethod
    def get_session(
        session_id: str,
        now: Optional[datetime] = None
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        session = StoreService.get_session(session_id)
        if not session:
            return None, ServiceError(ErrorKind.SESSION_NOT_FOUND, "Session not found")
        return session.to_dict(now), None

    @staticmethod
    def list_sessions(now: Optional[datetime] = None) -> List[Dict]:
        return [s.to_dict(now) for s in StoreService.list_sessions()]

    @staticmethod
    def update_session(
        session_id: str,
        data: Dict
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """Rename or retype a session. Expiry and signature never change."""
        check = Validator.validate_allowed_fields(data, SessionService.MUTABLE_FIELDS)
        if not check['is_valid']:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        session = StoreService.get_session(session_id)
        if not session:
            return None, ServiceError(ErrorKind.SESSION_NOT_FOUND, "Session not found")

        if 'name' in data:
            check = Validator.validate_name(data['name'], 200, 'Session name')
            if not check['is_valid']:
                return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        new_type = None
        if 'sessionType' in data:
            try:
                new_type = SessionType(data['sessionType'])
            except ValueError:
                return None, ServiceError(
                    ErrorKind.VALIDATION_ERROR,
                    f"Session type must be one of: {SESSION_TYPE_CHOICES}"
                )

        if 'name' in data:
            session.name = data['name'].strip()
        if new_type is not None:
            session.session_type = new_type

        StoreService.commit()
        return session.to_dict(), None

    @staticmethod
    def delete_session(session_id: str) -> Tuple[bool, Optional[ServiceError]]:
        """Delete a session and every attendance record under it."""
        if not StoreService.delete_session(session_id):
            return False, ServiceError(ErrorKind.SESSION_NOT_FOUND, "Session not found")

        current_app.logger.info('Session %s deleted with attendance records', session_id)
        return True, None
