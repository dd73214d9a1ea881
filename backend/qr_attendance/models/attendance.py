"""Attendance record: one participant's in/out presence in one session."""
from enum import Enum
from typing import Optional
from qr_attendance import db
from qr_attendance.models.base import BaseModel, enum_values
from qr_attendance.utils.timeutils import ensure_utc, minutes_between, to_iso


class AttendanceStatus(Enum):
    """partial: scanned in only. present: scanned in and out."""
    PARTIAL = 'partial'
    PRESENT = 'present'


class AttendanceRecord(BaseModel):
    """Attendance record model.

    Session and participant details are copied in at scan time so that
    reports keep showing what was true when the scan happened.
    """

    __tablename__ = 'attendance_records'

    id = db.Column(db.String(36), primary_key=True)
    session_id = db.Column(
        db.String(64),
        db.ForeignKey('sessions.session_id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    student_id = db.Column(
        db.String(50),
        db.ForeignKey('participants.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )

    # Snapshot of the session and participant at scan time
    session_name = db.Column(db.String(200), nullable=True)
    session_date = db.Column(db.Date, nullable=True)
    student_name = db.Column(db.String(100), nullable=True)
    student_role = db.Column(db.String(20), nullable=True, index=True)

    date = db.Column(db.Date, nullable=True, index=True)
    in_time = db.Column(db.DateTime(timezone=True), nullable=True)
    out_time = db.Column(db.DateTime(timezone=True), nullable=True)
    duration = db.Column(db.Integer, nullable=True)  # minutes
    status = db.Column(
        db.Enum(AttendanceStatus, values_callable=enum_values, name='attendance_status'),
        nullable=False,
        default=AttendanceStatus.PARTIAL
    )

    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student'),
    )

    def recompute(self) -> None:
        """Derive duration and status from the timestamps."""
        if self.in_time is not None and self.out_time is not None:
            self.duration = minutes_between(self.in_time, self.out_time)
            self.status = AttendanceStatus.PRESENT
        else:
            self.duration = None
            self.status = AttendanceStatus.PARTIAL

    @property
    def is_completed(self) -> bool:
        return self.out_time is not None

    def to_dict(self, action: Optional[str] = None):
        """Convert to dictionary."""
        result = {
            'id': self.id,
            'sessionId': self.session_id,
            'sessionName': self.session_name,
            'sessionDate': self.session_date.isoformat() if self.session_date else None,
            'studentId': self.student_id,
            'studentName': self.student_name,
            'studentRole': self.student_role,
            'date': self.date.isoformat() if self.date else None,
            'inTime': to_iso(ensure_utc(self.in_time)),
            'outTime': to_iso(ensure_utc(self.out_time)),
            'duration': self.duration,
            'status': self.status.value if self.status else None
        }
        if action:
            result['action'] = action
        return result

    def __repr__(self):
        return f'<AttendanceRecord {self.session_id}-{self.student_id}>'
