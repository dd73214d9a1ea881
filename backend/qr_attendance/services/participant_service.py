# backend/qr_attendance/services/participant_service.py
"""Participant management service."""
from typing import Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from qr_attendance.models import Participant, ParticipantRole
from qr_attendance.services.store_service import StoreService
from qr_attendance.utils.errors import ErrorKind, ServiceError
from qr_attendance.utils.validators import Validator

ROLE_CHOICES = ', '.join(role.value for role in ParticipantRole)


def _parse_role(value) -> Optional[ParticipantRole]:
    try:
        return ParticipantRole(value)
    except ValueError:
        return None


class ParticipantService:
    """Service for managing participants."""

    MUTABLE_FIELDS = ('name', 'role')

    @staticmethod
    def list_participants() -> List[Dict]:
        return [p.to_dict() for p in StoreService.list_participants()]

    @staticmethod
    def get_participant(participant_id: str) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        participant = StoreService.get_participant(participant_id)
        if not participant:
            return None, ServiceError(ErrorKind.PARTICIPANT_NOT_FOUND, "Participant not found")
        return participant.to_dict(), None

    @staticmethod
    def create_participant(
        participant_id: str,
        name: str,
        role: str
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """Enroll a new participant."""
        for check in (
            Validator.validate_identifier(participant_id, 50, 'Participant ID'),
            Validator.validate_name(name, 100, 'Name'),
        ):
            if not check['is_valid']:
                return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        participant_role = _parse_role(role)
        if participant_role is None:
            return None, ServiceError(
                ErrorKind.VALIDATION_ERROR, f"Role must be one of: {ROLE_CHOICES}"
            )

        participant_id = participant_id.strip()
        if StoreService.get_participant(participant_id):
            return None, ServiceError(ErrorKind.CONFLICT, "Participant ID already exists")

        participant = Participant(id=participant_id, name=name.strip(), role=participant_role)
        try:
            StoreService.add_participant(participant)
        except IntegrityError:
            return None, ServiceError(ErrorKind.CONFLICT, "Participant ID already exists")

        current_app.logger.info('Participant %s enrolled as %s', participant.id, participant_role.value)
        return participant.to_dict(), None

    @staticmethod
    def update_participant(
        participant_id: str,
        data: Dict
    ) -> Tuple[Optional[Dict], Optional[ServiceError]]:
        """Apply an explicit partial update: name and/or role."""
        check = Validator.validate_allowed_fields(data, ParticipantService.MUTABLE_FIELDS)
        if not check['is_valid']:
            return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        participant = StoreService.get_participant(participant_id)
        if not participant:
            return None, ServiceError(ErrorKind.PARTICIPANT_NOT_FOUND, "Participant not found")

        if 'name' in data:
            check = Validator.validate_name(data['name'], 100, 'Name')
            if not check['is_valid']:
                return None, ServiceError(ErrorKind.VALIDATION_ERROR, check['errors'][0])

        new_role = None
        if 'role' in data:
            new_role = _parse_role(data['role'])
            if new_role is None:
                return None, ServiceError(
                    ErrorKind.VALIDATION_ERROR, f"Role must be one of: {ROLE_CHOICES}"
                )

        if 'name' in data:
            participant.name = data['name'].strip()
        if new_role is not None:
            participant.role = new_role

        StoreService.commit()
        return participant.to_dict(), None

    @staticmethod
    def delete_participant(participant_id: str) -> Tuple[bool, Optional[ServiceError]]:
        """Remove a participant together with their attendance records."""
        if not StoreService.delete_participant(participant_id):
            return False, ServiceError(ErrorKind.PARTICIPANT_NOT_FOUND, "Participant not found")

        current_app.logger.info('Participant %s deleted with attendance records', participant_id)
        return True, None
