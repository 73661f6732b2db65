"""Doctor domain entity and the value objects it owns."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..errors import InvalidDoctorDataError
from .session import Session

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class TimeSlot:
    """Recurring weekly availability window with its fee."""

    day: str
    time_slot: str
    consultation_fee: float
    slot_id: str = field(default_factory=_new_id)


@dataclass
class Degree:
    degree_name: str
    institution: Optional[str] = None
    year_of_completion: Optional[int] = None
    verified_proof: Optional[str] = None
    degree_id: str = field(default_factory=_new_id)


@dataclass
class HospitalAffiliation:
    name: str
    location: Optional[str] = None
    affiliation_id: str = field(default_factory=_new_id)


@dataclass
class Doctor:
    """Doctor aggregate root.

    Sessions, availability, degrees and affiliations are embedded and only
    reachable through their owning doctor. Validation here is limited to the
    invariants every persisted doctor must satisfy; request-level checks live
    in the service.
    """

    email: str
    password: str
    salt: str
    first_name: str
    last_name: str
    doctor_id: str = field(default_factory=_new_id)
    middle_name: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[datetime] = None
    mobile_no: Optional[str] = None
    country_calling_code: Optional[str] = None
    about_doctor: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_verified: bool = False
    languages: List[str] = field(default_factory=list)
    specialization: List[str] = field(default_factory=list)
    degrees: List[Degree] = field(default_factory=list)
    hospital_affiliations: List[HospitalAffiliation] = field(default_factory=list)
    available_time_slots: List[TimeSlot] = field(default_factory=list)
    experience: int = 0
    consultation_fee: Optional[float] = None
    location: Optional[str] = None
    sessions: List[Session] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        self._validate_doctor_data()

    def _validate_doctor_data(self) -> None:
        if not self.doctor_id or not self.doctor_id.strip():
            raise InvalidDoctorDataError("doctor_id", self.doctor_id)

        if not self.email or not EMAIL_PATTERN.fullmatch(self.email.strip()):
            raise InvalidDoctorDataError("email", self.email)

        if not self.first_name or not self.first_name.strip():
            raise InvalidDoctorDataError("first_name", self.first_name)

        if not self.last_name or not self.last_name.strip():
            raise InvalidDoctorDataError("last_name", self.last_name)

        if self.gender is not None and self.gender not in ("male", "female", "other"):
            raise InvalidDoctorDataError("gender", self.gender)

    @property
    def display_name(self) -> str:
        """Salutation used in outbound mail."""
        return f"Dr. {self.first_name} {self.last_name}"

    def find_session(self, session_id: str) -> Optional[Session]:
        for session in self.sessions:
            if session.session_id == session_id:
                return session
        return None
