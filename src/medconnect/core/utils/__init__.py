"""
Utility functions for MedConnect application.
"""

from .crypto_utils import (
    generate_salt,
    hash_password,
    verify_password,
)
from .geo import haversine_km

__all__ = [
    # Crypto utilities
    "generate_salt",
    "hash_password",
    "verify_password",
    # Geo utilities
    "haversine_km",
]
