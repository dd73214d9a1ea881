"""Models package with all models."""
from .base import BaseModel
from .participant import Participant, ParticipantRole
from .attendance_session import AttendanceSession, SessionStatus, SessionType
from .attendance import AttendanceRecord, AttendanceStatus

__all__ = [
    'BaseModel', 'Participant', 'ParticipantRole',
    'AttendanceSession', 'SessionStatus', 'SessionType',
    'AttendanceRecord', 'AttendanceStatus'
]
