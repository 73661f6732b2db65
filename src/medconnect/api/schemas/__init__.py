"""
API schemas package.
"""

# Common schemas
from .common import (
    CamelModel,
    MessageResponse,
    ApiResponse,
    ErrorResponse,
)

# Doctor schemas
from .doctor import (
    RegisterDoctorBody,
    LoginBody,
    ForgotPasswordBody,
    ResetPasswordBody,
    ChangePasswordBody,
    ProfileUpdateBody,
    TimeSlotBody,
    BookSessionBody,
    SessionUpdateBody,
    CompleteSessionBody,
    DegreeBody,
    AffiliationBody,
    SearchBody,
)

__all__ = [
    # Common
    "CamelModel",
    "MessageResponse",
    "ApiResponse",
    "ErrorResponse",

    # Doctor
    "RegisterDoctorBody",
    "LoginBody",
    "ForgotPasswordBody",
    "ResetPasswordBody",
    "ChangePasswordBody",
    "ProfileUpdateBody",
    "TimeSlotBody",
    "BookSessionBody",
    "SessionUpdateBody",
    "CompleteSessionBody",
    "DegreeBody",
    "AffiliationBody",
    "SearchBody",
]
