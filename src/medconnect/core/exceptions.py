"""
Exception handling for MedConnect application.

Business-rule failures (missing fields, not found, bad credentials) are
returned as ``ServiceResult`` values by the service layer. The classes here
cover the failures that must propagate to the app-level exception handlers.
"""

from typing import Any, Dict, Optional


class MedConnectException(Exception):
    """Base exception class for MedConnect application."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)


class DatabaseError(MedConnectException):
    """Raised when a store operation fails for a reason other than not-found."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, "DATABASE_ERROR", details, cause)


class DocumentValidationError(MedConnectException):
    """Raised when the store or ODM rejects a document's shape or uniqueness."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, "VALIDATION_ERROR", details, cause)


class ExternalServiceError(MedConnectException):
    """Raised when there's an external service error."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "EXTERNAL_SERVICE_ERROR", details, cause)


class NotificationError(ExternalServiceError):
    """Raised by a notification adapter when a message cannot be delivered."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__("Mail", message, details, cause)
