"""
Domain entities package.
"""

from .doctor import Degree, Doctor, HospitalAffiliation, TimeSlot
from .session import Session

__all__ = [
    "Doctor",
    "TimeSlot",
    "Degree",
    "HospitalAffiliation",
    "Session",
]
