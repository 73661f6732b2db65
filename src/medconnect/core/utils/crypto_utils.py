"""
Password hashing helpers for MedConnect application.

Each doctor record stores its own random salt next to the derived hash; a
password check recomputes the hash with the stored salt and compares.
"""

import hashlib
import hmac
import secrets

DEFAULT_ITERATIONS = 100_000


def generate_salt(nbytes: int = 16) -> str:
    """Generate a fresh per-record salt (hex)."""
    return secrets.token_hex(nbytes)


def hash_password(password: str, salt: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Derive a PBKDF2-SHA256 hash of ``password`` with ``salt``."""
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations
    )
    return digest.hex()


def verify_password(
    password: str, hashed_password: str, salt: str, iterations: int = DEFAULT_ITERATIONS
) -> bool:
    """Verify password against the stored hash and salt."""
    if not password or not hashed_password or not salt:
        return False
    candidate = hash_password(password, salt, iterations)
    return hmac.compare_digest(candidate, hashed_password)
