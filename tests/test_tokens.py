"""
Token issuing, purpose scoping and password hashing.
"""

import time

import pytest
from fastapi import HTTPException

from medconnect.core.auth import AuthService
from medconnect.core.config import SecuritySettings
from medconnect.core.utils.crypto import PURPOSE_ACCESS, PURPOSE_RESET, PURPOSE_VERIFY, TokenService
from medconnect.core.utils.crypto_utils import generate_salt, hash_password, verify_password
from medconnect.domain.value_objects.identity import DoctorIdentity

SECRET = "x" * 40


@pytest.fixture
def tokens():
    return TokenService(SecuritySettings(secret_key=SECRET))


def test_round_trip_keeps_claims(tokens):
    token = tokens.issue({"doctorId": "d1", "email": "a@b.com"}, PURPOSE_ACCESS)
    assert tokens.decode(token, PURPOSE_ACCESS) == {"doctorId": "d1", "email": "a@b.com"}


def test_purpose_mismatch_is_rejected(tokens):
    reset = tokens.issue({"email": "a@b.com"}, PURPOSE_RESET)
    assert tokens.decode(reset, PURPOSE_ACCESS) is None
    assert tokens.decode(reset, PURPOSE_VERIFY) is None


def test_tampered_and_foreign_tokens_are_rejected(tokens):
    token = tokens.issue({"doctorId": "d1"}, PURPOSE_ACCESS)
    assert tokens.decode(token[:-4] + "AAAA", PURPOSE_ACCESS) is None
    assert tokens.decode("", PURPOSE_ACCESS) is None

    other = TokenService(SecuritySettings(secret_key="y" * 40))
    assert other.decode(token, PURPOSE_ACCESS) is None


def test_expired_token_is_rejected(tokens, monkeypatch):
    token = tokens.issue({"email": "a@b.com"}, PURPOSE_RESET)
    issued_at = time.time()

    monkeypatch.setattr(time, "time", lambda: issued_at + 60 * 60)

    assert tokens.decode(token, PURPOSE_RESET) is None


def test_unknown_purpose_cannot_be_issued(tokens):
    with pytest.raises(ValueError):
        tokens.issue({}, "admin")


def test_auth_service_resolves_identity(tokens):
    auth = AuthService(tokens)
    token = tokens.issue(DoctorIdentity("d1", "a@b.com", "Ada", "Lovelace").to_claims(), PURPOSE_ACCESS)

    identity = auth.get_identity_from_header(f"Bearer {token}")
    assert identity == DoctorIdentity("d1", "a@b.com", "Ada", "Lovelace")

    with pytest.raises(HTTPException) as exc:
        auth.get_identity_from_header("Basic abc")
    assert exc.value.status_code == 401


def test_password_hash_uses_salt():
    salt = generate_salt()
    hashed = hash_password("s3cret", salt, iterations=1_000)

    assert verify_password("s3cret", hashed, salt, iterations=1_000)
    assert not verify_password("wrong", hashed, salt, iterations=1_000)
    assert hash_password("s3cret", generate_salt(), iterations=1_000) != hashed
