"""Base model class with common functionality."""
from qr_attendance import db
from qr_attendance.utils.timeutils import utc_now


class BaseModel(db.Model):
    """Base model class with audit timestamps.

    Primary keys are declared by each model: participants and sessions are
    keyed by string identifiers, not surrogate integers.
    """

    __abstract__ = True

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.__mapper__.primary_key_from_instance(self)}>'


def enum_values(enum_cls):
    """Persist enum values ('CoreMember') rather than member names."""
    return [member.value for member in enum_cls]
