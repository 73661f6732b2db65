"""
Value objects package for domain layer.
"""

from .identity import DoctorIdentity

__all__ = [
    "DoctorIdentity",
]
