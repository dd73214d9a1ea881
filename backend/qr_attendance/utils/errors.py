"""Structured error results returned by the service layer."""
from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Error kinds with the HTTP status they surface as."""
    VALIDATION_ERROR = ('ValidationError', 400)
    MISSING_FIELDS = ('MissingFields', 400)
    INVALID_SIGNATURE = ('InvalidSignature', 401)
    EXPIRED = ('Expired', 401)
    SESSION_NOT_FOUND = ('SessionNotFound', 404)
    SESSION_NOT_ACTIVE = ('SessionNotActive', 400)
    PARTICIPANT_NOT_FOUND = ('ParticipantNotFound', 404)
    ROLE_MISMATCH = ('RoleMismatch', 403)
    ALREADY_COMPLETED = ('AlreadyCompleted', 409)
    MISSING_IN_TIME = ('MissingInTime', 409)
    NOT_FOUND = ('NotFound', 404)
    CONFLICT = ('Conflict', 409)

    def __init__(self, code: str, status_code: int):
        self.code = code
        self.status_code = status_code


@dataclass(frozen=True)
class ServiceError:
    """A recoverable failure: what went wrong and how to tell the caller."""
    kind: ErrorKind
    message: str

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __str__(self) -> str:
        return f'{self.code}: {self.message}'
