"""
Authentication service for protected doctor endpoints.

Validates ``Authorization: Bearer <token>`` headers issued at login and
resolves them to a ``DoctorIdentity``.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from ..domain.value_objects.identity import DoctorIdentity
from .utils.crypto import PURPOSE_ACCESS, TokenService, get_token_service

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for validating bearer tokens"""

    def __init__(self, token_service: Optional[TokenService] = None):
        self._tokens = token_service or get_token_service()

    def validate_token(self, token: Optional[str]) -> DoctorIdentity:
        """
        Validate an access token and return the identity it carries.

        Raises:
            HTTPException: If the token is missing, invalid or expired
        """
        if not token:
            raise HTTPException(
                status_code=401,
                detail="Authentication required. Provide Authorization Bearer token.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        claims = self._tokens.decode(token, PURPOSE_ACCESS)
        if not claims:
            logger.warning(f"❌ Invalid or expired access token attempted: {token[:10]}...")
            raise HTTPException(
                status_code=401,
                detail="Invalid or expired token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            identity = DoctorIdentity.from_claims(claims)
        except ValueError:
            raise HTTPException(
                status_code=401,
                detail="Token is missing identity claims",
                headers={"WWW-Authenticate": "Bearer"},
            )

        logger.debug(f"✅ Token validated for doctor: {identity.doctor_id}")
        return identity

    def get_identity_from_header(self, auth_header: Optional[str]) -> DoctorIdentity:
        """Extract and validate identity from an Authorization header value."""
        if auth_header and auth_header.startswith("Bearer "):
            return self.validate_token(auth_header[7:].strip())

        raise HTTPException(
            status_code=401,
            detail="Authentication required. Provide Authorization Bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Global instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get global authentication service instance (singleton)"""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
