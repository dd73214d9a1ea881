"""QR payload signing and verification."""
import hashlib
import hmac
from typing import Optional

from flask import current_app


class SignatureService:
    """SHA-256 signatures over ``sessionId|expiryTime|secret``.

    The secret is the process-wide ``QR_SECRET_KEY`` and never leaves the
    server. Signatures are 64 lowercase hex characters.
    """

    SEPARATOR = '|'

    @staticmethod
    def _secret(secret: Optional[str] = None) -> str:
        return secret if secret is not None else current_app.config['QR_SECRET_KEY']

    @staticmethod
    def sign(session_id: str, expiry_time: str, secret: Optional[str] = None) -> str:
        """Signature for a session id and its ISO expiry string."""
        data = SignatureService.SEPARATOR.join(
            (session_id, expiry_time, SignatureService._secret(secret))
        )
        return hashlib.sha256(data.encode('utf-8')).hexdigest()

    @staticmethod
    def verify(
        session_id: str,
        expiry_time: str,
        signature: str,
        secret: Optional[str] = None
    ) -> bool:
        """Constant-time check of a candidate signature."""
        if not all(isinstance(v, str) for v in (session_id, expiry_time, signature)):
            return False

        expected = SignatureService.sign(session_id, expiry_time, secret)

        # Length is not secret
        if len(signature) != len(expected):
            return False

        return hmac.compare_digest(signature.encode('utf-8'), expected.encode('utf-8'))
