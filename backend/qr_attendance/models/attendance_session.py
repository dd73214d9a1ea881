"""Attendance session: a time-boxed, signed scanning window."""
from datetime import datetime
from enum import Enum
from typing import Optional
from qr_attendance import db
from qr_attendance.models.base import BaseModel, enum_values
from qr_attendance.models.participant import ParticipantRole
from qr_attendance.utils.timeutils import ensure_utc, to_iso, utc_now


class SessionType(Enum):
    """Which participant roles a session accepts."""
    CORE = 'Core'
    VOLUNTEER = 'Volunteer'
    BOTH = 'Both'


class SessionStatus(Enum):
    """Stored session status. Expiry is derived, never stored."""
    ACTIVE = 'active'
    ENDED = 'ended'


class AttendanceSession(BaseModel):
    """Session for tracking attendance with signed QR codes."""

    __tablename__ = 'sessions'

    session_id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(200), nullable=False)

    # Wall-clock definition, same calendar date
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    # Absolute instants (UTC)
    start_datetime = db.Column(db.DateTime(timezone=True), nullable=False)
    end_datetime = db.Column(db.DateTime(timezone=True), nullable=False)
    expiry_time = db.Column(db.DateTime(timezone=True), nullable=False)

    session_type = db.Column(
        db.Enum(SessionType, values_callable=enum_values, name='session_type'),
        nullable=False
    )
    status = db.Column(
        db.Enum(SessionStatus, values_callable=enum_values, name='session_status'),
        nullable=False,
        default=SessionStatus.ACTIVE
    )
    signature = db.Column(db.String(64), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    records = db.relationship(
        'AttendanceRecord',
        backref='session',
        lazy='dynamic',
        passive_deletes=True
    )

    __table_args__ = (
        db.CheckConstraint('end_datetime > start_datetime', name='ck_sessions_time_window'),
    )

    @property
    def expiry_iso(self) -> str:
        """Expiry exactly as it was signed."""
        return to_iso(self.expiry_time)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the session's QR code has expired."""
        now = ensure_utc(now) if now else utc_now()
        return now > ensure_utc(self.expiry_time)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Usable right now: not ended and not past expiry."""
        return self.status == SessionStatus.ACTIVE and not self.is_expired(now)

    def accepts_role(self, role) -> bool:
        """Role gate for scans."""
        if self.session_type == SessionType.BOTH:
            return True
        if self.session_type == SessionType.CORE:
            return role == ParticipantRole.CORE_MEMBER
        if self.session_type == SessionType.VOLUNTEER:
            return role == ParticipantRole.VOLUNTEER
        return False

    def to_dict(self, now: Optional[datetime] = None):
        """Convert to dictionary."""
        return {
            'sessionId': self.session_id,
            'name': self.name,
            'date': self.date.isoformat(),
            'startTime': self.start_time.strftime('%H:%M'),
            'endTime': self.end_time.strftime('%H:%M'),
            'startDateTime': to_iso(self.start_datetime),
            'endDateTime': to_iso(self.end_datetime),
            'sessionType': self.session_type.value,
            'createdAt': to_iso(self.created_at),
            'expiryTime': self.expiry_iso,
            'status': self.status.value,
            'endedAt': to_iso(self.ended_at),
            'signature': self.signature,
            'isExpired': self.is_expired(now),
            'isActive': self.is_active(now)
        }

    def __repr__(self) -> str:
        return f'<AttendanceSession {self.session_id}>'
