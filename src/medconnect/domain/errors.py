"""
Domain-specific error types for business rule violations.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidDoctorDataError(DomainError):
    """Invalid doctor data."""

    def __init__(self, field: str, value: Any) -> None:
        message = f"Invalid doctor data. Field: {field}, Value: {value}"
        super().__init__(message, "INVALID_DOCTOR_DATA", {"field": field, "value": value})


class InvalidSessionDataError(DomainError):
    """Invalid session data."""

    def __init__(self, field: str, value: Any) -> None:
        message = f"Invalid session data. Field: {field}, Value: {value}"
        super().__init__(message, "INVALID_SESSION_DATA", {"field": field, "value": value})
