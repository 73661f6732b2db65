"""
Doctor API request schemas.

Bodies arrive in camelCase. Every business field is optional here so that a
missing value reaches the service and yields its 400 message rather than a
framework 422.
"""

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator

from .common import CamelModel


def _date_only_to_datetime(value: Any) -> Any:
    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.combine(date.fromisoformat(value.strip()), datetime.min.time())
    return value


class RegisterDoctorBody(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[datetime] = Field(None, validation_alias=AliasChoices("DOB", "dob"))
    mobile_no: Optional[str] = None
    country_calling_code: Optional[str] = None
    about_doctor: Optional[str] = None
    specialization: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None

    @field_validator("dob", mode="before")
    @classmethod
    def parse_dob(cls, v):
        return _date_only_to_datetime(v)


class LoginBody(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordBody(CamelModel):
    email: Optional[str] = None


class ResetPasswordBody(CamelModel):
    new_password: Optional[str] = None


class ChangePasswordBody(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ProfileUpdateBody(CamelModel):
    """Editable profile fields. Unknown keys (credentials, ids) are dropped."""

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[datetime] = Field(None, validation_alias=AliasChoices("DOB", "dob"))
    mobile_no: Optional[str] = None
    country_calling_code: Optional[str] = None
    about_doctor: Optional[str] = None
    profile_image_url: Optional[str] = None
    languages: Optional[List[str]] = None
    specialization: Optional[List[str]] = None
    experience: Optional[int] = Field(None, ge=0)
    consultation_fee: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None

    @field_validator("dob", mode="before")
    @classmethod
    def parse_dob(cls, v):
        return _date_only_to_datetime(v)


class TimeSlotBody(CamelModel):
    day: Optional[str] = None
    time_slot: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)


class BookSessionBody(CamelModel):
    patient_id: Optional[str] = None
    type: Optional[str] = None
    date: Optional[datetime] = None
    time_slot: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _date_only_to_datetime(v)


class SessionUpdateBody(CamelModel):
    """Mutable session details; ``sessionId`` and ``status`` are not accepted."""

    patient_id: Optional[str] = None
    type: Optional[str] = None
    date: Optional[datetime] = None
    time_slot: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return _date_only_to_datetime(v)


class CompleteSessionBody(CamelModel):
    notes: Optional[str] = None


class DegreeBody(CamelModel):
    degree_name: Optional[str] = None
    institution: Optional[str] = None
    year_of_completion: Optional[int] = None
    verified_proof: Optional[str] = None


class AffiliationBody(CamelModel):
    name: Optional[str] = None
    location: Optional[str] = None


class SearchBody(CamelModel):
    name: Optional[str] = None
    specialization: Optional[str] = None
    language: Optional[str] = None
    location: Optional[str] = None
    min_experience: Optional[int] = Field(None, ge=0)
    max_fee: Optional[float] = Field(None, ge=0)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
