"""
MedConnect: doctor-facing telehealth backend

Registration, authentication, profile management, availability scheduling
and session booking for practitioners, backed by MongoDB.
"""

__version__ = "0.1.0"
__author__ = "MedConnect Team"
__description__ = "Doctor-facing telehealth backend"
