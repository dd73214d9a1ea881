"""Participant model: anyone who can scan into a session."""
from enum import Enum
from qr_attendance import db
from qr_attendance.models.base import BaseModel, enum_values
from qr_attendance.utils.timeutils import to_iso


class ParticipantRole(Enum):
    """Participant roles enumeration."""
    ADMIN = 'Admin'
    CORE_MEMBER = 'CoreMember'
    VOLUNTEER = 'Volunteer'


class Participant(BaseModel):
    """Enrolled participant, keyed by an externally assigned id."""

    __tablename__ = 'participants'

    id = db.Column(db.String(50), primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    role = db.Column(
        db.Enum(ParticipantRole, values_callable=enum_values, name='participant_role'),
        nullable=False
    )

    attendance_records = db.relationship(
        'AttendanceRecord',
        backref='participant',
        lazy='dynamic',
        passive_deletes=True
    )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role.value if self.role else None,
            'createdAt': to_iso(self.created_at)
        }

    def __repr__(self) -> str:
        return f'<Participant {self.id}>'
