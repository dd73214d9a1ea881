# backend/qr_attendance/services/store_service.py
"""Persistence adapter for participants, sessions and attendance records.

All reads and writes go through the Flask-SQLAlchemy session. Each public
write commits exactly once; any ``SQLAlchemyError`` rolls back and
propagates to the API error handlers.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from qr_attendance import db
from qr_attendance.models import (
    AttendanceRecord, AttendanceSession, AttendanceStatus, Participant, ParticipantRole,
    SessionStatus
)
from qr_attendance.utils.errors import ErrorKind, ServiceError
from qr_attendance.utils.timeutils import ensure_utc, minutes_between, parse_date, parse_iso, utc_now


class _Unset:
    def __repr__(self) -> str:
        return 'UNSET'


UNSET = _Unset()


def _escape_like(value: str) -> str:
    """Match ``%`` and ``_`` literally in a LIKE pattern escaped with ``\\``."""
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


@dataclass
class AttendanceFilters:
    """Conjunctive filters for attendance queries."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    role: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_args(cls, args) -> Tuple[Optional['AttendanceFilters'], Optional[ServiceError]]:
        """Build from query-string style args (camelCase keys)."""
        filters = cls(
            student_id=args.get('studentId') or None,
            session_id=args.get('sessionId') or None,
            name=(args.get('name') or '').strip() or None,
        )

        role = args.get('role')
        if role:
            try:
                filters.role = ParticipantRole(role).value
            except ValueError:
                return None, ServiceError(ErrorKind.VALIDATION_ERROR, f"Invalid role: {role}")

        for key, attr in (('startDate', 'start_date'), ('endDate', 'end_date')):
            raw = args.get(key)
            if raw:
                try:
                    setattr(filters, attr, parse_date(raw))
                except ValueError:
                    return None, ServiceError(ErrorKind.VALIDATION_ERROR, f"Invalid {key}: {raw}")

        return filters, None


@dataclass
class AttendanceUpdate:
    """Admin edit of an attendance record.

    Only the timestamps are editable. ``duration`` and ``status`` are always
    derived after the merge.
    """
    in_time: Any = UNSET
    out_time: Any = UNSET

    MUTABLE_FIELDS = ('inTime', 'outTime')
    DERIVED_FIELDS = ('duration', 'status')

    @classmethod
    def from_dict(cls, data: Dict) -> Tuple[Optional['AttendanceUpdate'], Optional[ServiceError]]:
        data = data or {}
        unknown = sorted(set(data) - set(cls.MUTABLE_FIELDS) - set(cls.DERIVED_FIELDS))
        if unknown:
            return None, ServiceError(
                ErrorKind.VALIDATION_ERROR, f"Field cannot be updated: {', '.join(unknown)}"
            )

        changes = cls()
        for key, attr in (('inTime', 'in_time'), ('outTime', 'out_time')):
            if key not in data:
                continue
            raw = data[key]
            if raw is None or raw == '':
                setattr(changes, attr, None)
                continue
            try:
                setattr(changes, attr, parse_iso(raw))
            except ValueError:
                return None, ServiceError(ErrorKind.VALIDATION_ERROR, f"Invalid {key}: {raw}")

        if changes.in_time is None:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "inTime cannot be cleared")

        return changes, None


class StoreService:
    """Service for persistent storage operations."""

    # ---------- participants ----------

    @staticmethod
    def list_participants() -> List[Participant]:
        return db.session.scalars(select(Participant).order_by(Participant.name)).all()

    @staticmethod
    def get_participant(participant_id: str) -> Optional[Participant]:
        return db.session.get(Participant, participant_id)

    @staticmethod
    def add_participant(participant: Participant) -> Participant:
        return StoreService._commit_new(participant)

    @staticmethod
    def delete_participant(participant_id: str) -> bool:
        """Delete a participant and their attendance records together."""
        participant = db.session.get(Participant, participant_id)
        if not participant:
            return False

        try:
            AttendanceRecord.query.filter_by(student_id=participant_id).delete(
                synchronize_session=False
            )
            db.session.delete(participant)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return True

    # ---------- sessions ----------

    @staticmethod
    def list_sessions() -> List[AttendanceSession]:
        return db.session.scalars(
            select(AttendanceSession).order_by(AttendanceSession.created_at.desc())
        ).all()

    @staticmethod
    def get_session(session_id: str) -> Optional[AttendanceSession]:
        return db.session.get(AttendanceSession, session_id)

    @staticmethod
    def add_session(session: AttendanceSession) -> AttendanceSession:
        """Insert a new session; a duplicate id raises ``IntegrityError``."""
        return StoreService._commit_new(session)

    @staticmethod
    def active_sessions() -> List[AttendanceSession]:
        return db.session.scalars(
            select(AttendanceSession).where(AttendanceSession.status == SessionStatus.ACTIVE)
        ).all()

    @staticmethod
    def delete_session(session_id: str) -> bool:
        """Delete a session and its attendance records together."""
        session = db.session.get(AttendanceSession, session_id)
        if not session:
            return False

        try:
            AttendanceRecord.query.filter_by(session_id=session_id).delete(
                synchronize_session=False
            )
            db.session.delete(session)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return True

    # ---------- attendance ----------

    @staticmethod
    def find_attendance(session_id: str, student_id: str, lock: bool = False) -> Optional[AttendanceRecord]:
        """The record for a (session, participant) pair, if any.

        ``lock`` takes a row lock for the rest of the transaction on
        databases that support ``SELECT ... FOR UPDATE``.
        """
        stmt = select(AttendanceRecord).where(
            AttendanceRecord.session_id == session_id,
            AttendanceRecord.student_id == student_id
        )
        if lock:
            stmt = stmt.with_for_update()
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def add_attendance(record: AttendanceRecord) -> AttendanceRecord:
        """Insert a first scan; a second row for the same pair raises ``IntegrityError``."""
        return StoreService._commit_new(record)

    @staticmethod
    def complete_attendance(record: AttendanceRecord, out_time: datetime) -> Optional[ServiceError]:
        """Stamp the exit scan unless another writer already did.

        The UPDATE only matches an open record whose ``in_time`` is not
        after ``out_time``. When it matches nothing the transaction is
        rolled back and the reason comes back as a ``ServiceError``.
        """
        record_id = record.id
        duration = minutes_between(record.in_time, out_time)
        try:
            result = db.session.execute(
                update(AttendanceRecord)
                .where(
                    AttendanceRecord.id == record_id,
                    AttendanceRecord.out_time.is_(None),
                    AttendanceRecord.in_time <= out_time
                )
                .values(
                    out_time=out_time,
                    duration=duration,
                    status=AttendanceStatus.PRESENT,
                    updated_at=out_time
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.session.rollback()
                current = db.session.get(AttendanceRecord, record_id)
                if current is None:
                    return ServiceError(ErrorKind.NOT_FOUND, "Attendance record not found")
                if current.out_time is not None:
                    return ServiceError(
                        ErrorKind.ALREADY_COMPLETED, "Attendance already completed for this session"
                    )
                return ServiceError(
                    ErrorKind.VALIDATION_ERROR, "Check-out time cannot be before check-in time"
                )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return None

    @staticmethod
    def get_attendance_by_id(attendance_id: str) -> Optional[AttendanceRecord]:
        return db.session.get(AttendanceRecord, attendance_id)

    @staticmethod
    def get_attendance(filters: Optional[AttendanceFilters] = None) -> List[AttendanceRecord]:
        """Filtered attendance, newest scan first."""
        filters = filters or AttendanceFilters()
        query = AttendanceRecord.query

        if filters.start_date:
            query = query.filter(AttendanceRecord.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(AttendanceRecord.date <= filters.end_date)
        if filters.student_id:
            query = query.filter(AttendanceRecord.student_id == filters.student_id)
        if filters.session_id:
            query = query.filter(AttendanceRecord.session_id == filters.session_id)
        if filters.role:
            query = query.filter(AttendanceRecord.student_role == filters.role)
        if filters.name:
            query = query.filter(
                AttendanceRecord.student_name.ilike(f'%{_escape_like(filters.name)}%', escape='\\')
            )

        return query.order_by(AttendanceRecord.in_time.desc()).all()

    @staticmethod
    def update_attendance(
        attendance_id: str,
        changes: AttendanceUpdate,
        now: Optional[datetime] = None
    ) -> Tuple[Optional[AttendanceRecord], Optional[ServiceError]]:
        """Merge an admin edit and recompute the derived fields.

        An open record (no ``outTime``) cannot be given an ``inTime`` after
        ``now``, since the next scan would then check out before it checked in.
        """
        record = db.session.get(AttendanceRecord, attendance_id)
        if not record:
            return None, ServiceError(ErrorKind.NOT_FOUND, "Attendance record not found")

        in_time = ensure_utc(record.in_time) if changes.in_time is UNSET else changes.in_time
        out_time = ensure_utc(record.out_time) if changes.out_time is UNSET else changes.out_time

        if out_time is not None and in_time is None:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "outTime requires inTime")
        if out_time is not None and out_time < in_time:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, "outTime cannot be before inTime")
        if out_time is None and in_time is not None and in_time > ensure_utc(now or utc_now()):
            return None, ServiceError(
                ErrorKind.VALIDATION_ERROR, "inTime cannot be in the future while outTime is empty"
            )

        record.in_time = in_time
        record.out_time = out_time
        record.recompute()

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return record, None

    @staticmethod
    def delete_attendance(attendance_id: str) -> bool:
        record = db.session.get(AttendanceRecord, attendance_id)
        if not record:
            return False
        try:
            db.session.delete(record)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return True

    # ---------- shared ----------

    @staticmethod
    def commit() -> None:
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

    @staticmethod
    def _commit_new(obj):
        db.session.add(obj)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return obj
