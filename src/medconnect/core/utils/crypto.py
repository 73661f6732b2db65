"""
Signed, time-bounded tokens for MedConnect.

Tokens are Fernet tokens (AES-CBC + HMAC, with an issue timestamp) wrapping a
JSON claim set. Every token carries a ``purpose`` claim so a password-reset
token cannot be replayed as a login token and vice versa. Expiry is enforced
on decode through Fernet's ``ttl``.

The Fernet key is derived from ``SECURITY_SECRET_KEY``.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import SecuritySettings, get_settings

logger = logging.getLogger(__name__)

PURPOSE_ACCESS = "access"
PURPOSE_VERIFY = "verify"
PURPOSE_RESET = "reset"


def _derive_key(secret_key: str) -> bytes:
    digest = hashlib.sha256(secret_key.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class TokenService:
    """Issue and validate purpose-scoped tokens."""

    def __init__(self, settings: Optional[SecuritySettings] = None) -> None:
        self._settings = settings or get_settings().security
        self._fernet = Fernet(_derive_key(self._settings.secret_key))
        self._ttl_minutes = {
            PURPOSE_ACCESS: self._settings.access_token_expire_minutes,
            PURPOSE_VERIFY: self._settings.verification_token_expire_minutes,
            PURPOSE_RESET: self._settings.reset_token_expire_minutes,
        }

    def issue(self, claims: Dict[str, Any], purpose: str) -> str:
        if purpose not in self._ttl_minutes:
            raise ValueError(f"Unknown token purpose: {purpose}")
        payload = {**claims, "purpose": purpose}
        token = self._fernet.encrypt(json.dumps(payload).encode("utf-8"))
        return token.decode("utf-8")

    def decode(self, token: Optional[str], purpose: str) -> Optional[Dict[str, Any]]:
        """Return the claims for a valid, unexpired token of ``purpose``, else None."""
        if not token:
            return None
        ttl_seconds = self._ttl_minutes.get(purpose, 0) * 60
        try:
            raw = self._fernet.decrypt(token.encode("utf-8"), ttl=ttl_seconds)
        except (InvalidToken, ValueError, TypeError):
            logger.debug("Rejected %s token (invalid signature or expired)", purpose)
            return None

        try:
            claims = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None

        if not isinstance(claims, dict) or claims.get("purpose") != purpose:
            return None
        claims.pop("purpose", None)
        return claims


_token_service: Optional[TokenService] = None


def get_token_service() -> TokenService:
    """Get global token service instance (singleton)."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService()
    return _token_service
