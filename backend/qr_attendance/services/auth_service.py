"""Admin authentication service."""
import hmac
from typing import Dict, Optional, Tuple

from flask import current_app
from flask_jwt_extended import create_access_token, get_jti

from qr_attendance.utils.decorators import ADMIN_ROLE

ADMIN_IDENTITY = 'admin'


def _token_store():
    return current_app.extensions['admin_tokens']


class AuthService:
    @staticmethod
    def login(password: str) -> Tuple[Optional[Dict], Optional[str]]:
        """Check the admin password and issue a registered access token."""
        if not isinstance(password, str) or not password:
            return None, "Password is required"

        expected = current_app.config.get('ADMIN_PASSWORD') or ''
        if not hmac.compare_digest(password.encode('utf-8'), expected.encode('utf-8')):
            current_app.logger.warning('Failed admin login attempt')
            return None, "Invalid password"

        token = create_access_token(
            identity=ADMIN_IDENTITY,
            additional_claims={'role': ADMIN_ROLE}
        )

        expires = current_app.config.get('JWT_ACCESS_TOKEN_EXPIRES')
        expires_in = int(expires.total_seconds()) if expires else None
        _token_store().add(get_jti(token), expires_in)

        current_app.logger.info('Admin logged in')
        return {
            'token': token,
            'expiresIn': expires_in
        }, None

    @staticmethod
    def logout(jti: str) -> None:
        """Revoke the token with this jti."""
        _token_store().revoke(jti)
        current_app.logger.info('Admin logged out')
