"""Doctor DTOs for API communication.

Request DTOs are deliberately lenient (every field optional): the service
decides what is missing and answers with a 400 envelope. The ``*_to_dict``
helpers produce the camelCase wire shape and never expose credentials.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ...domain.entities.doctor import Degree, Doctor, HospitalAffiliation, TimeSlot
from ...domain.entities.session import Session

T = TypeVar("T")


@dataclass
class RegisterDoctorRequest:
    """Request DTO for doctor registration."""

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    specialization: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    middle_name: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[datetime] = None
    mobile_no: Optional[str] = None
    country_calling_code: Optional[str] = None
    about_doctor: Optional[str] = None
    experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    location: Optional[str] = None


@dataclass
class TimeSlotData:
    day: Optional[str] = None
    time_slot: Optional[str] = None
    consultation_fee: Optional[float] = None

    def is_complete(self) -> bool:
        return bool(self.day and self.time_slot) and self.consultation_fee is not None


@dataclass
class BookSessionRequest:
    """Request DTO for booking a session."""

    patient_id: Optional[str] = None
    type: Optional[str] = None
    date: Optional[datetime] = None
    time_slot: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class DegreeData:
    degree_name: Optional[str] = None
    institution: Optional[str] = None
    year_of_completion: Optional[int] = None
    verified_proof: Optional[str] = None


@dataclass
class AffiliationData:
    name: Optional[str] = None
    location: Optional[str] = None


@dataclass
class DoctorSearchCriteria:
    """Optional, conjunctive search criteria."""

    name: Optional[str] = None
    specialization: Optional[str] = None
    language: Optional[str] = None
    location: Optional[str] = None
    min_experience: Optional[int] = None
    max_fee: Optional[float] = None
    page: int = 1
    limit: int = 10


@dataclass
class DoctorListQuery:
    """Public directory listing: equality filters, sort and pagination."""

    filters: Dict[str, Any] = field(default_factory=dict)
    page: int = 1
    limit: int = 10
    sort: Optional[str] = None


@dataclass
class Page(Generic[T]):
    """One page of results plus the count it was computed against.

    ``total`` comes from a separate count query and may drift from ``items``
    under concurrent writes.
    """

    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
        }


def time_slot_to_dict(slot: TimeSlot) -> Dict[str, Any]:
    return {
        "slotId": slot.slot_id,
        "day": slot.day,
        "timeSlot": slot.time_slot,
        "consultationFee": slot.consultation_fee,
    }


def degree_to_dict(degree: Degree) -> Dict[str, Any]:
    return {
        "degreeId": degree.degree_id,
        "degreeName": degree.degree_name,
        "institution": degree.institution,
        "yearOfCompletion": degree.year_of_completion,
        "verifiedProof": degree.verified_proof,
    }


def affiliation_to_dict(affiliation: HospitalAffiliation) -> Dict[str, Any]:
    return {
        "affiliationId": affiliation.affiliation_id,
        "name": affiliation.name,
        "location": affiliation.location,
    }


def session_to_dict(session: Session) -> Dict[str, Any]:
    return {
        "sessionId": session.session_id,
        "patientId": session.patient_id,
        "type": session.type.value,
        "date": session.date,
        "timeSlot": session.time_slot,
        "sessionLink": session.session_link,
        "duration": session.duration,
        "status": session.status.value,
        "notes": session.notes,
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
    }


def doctor_to_dict(doctor: Doctor, include_sessions: bool = True) -> Dict[str, Any]:
    """Public representation of a doctor (no password or salt)."""
    data = {
        "doctorId": doctor.doctor_id,
        "email": doctor.email,
        "firstName": doctor.first_name,
        "middleName": doctor.middle_name,
        "lastName": doctor.last_name,
        "gender": doctor.gender,
        "DOB": doctor.dob,
        "mobileNo": doctor.mobile_no,
        "countryCallingCode": doctor.country_calling_code,
        "aboutDoctor": doctor.about_doctor,
        "profileImageUrl": doctor.profile_image_url,
        "isVerified": doctor.is_verified,
        "languages": list(doctor.languages),
        "specialization": list(doctor.specialization),
        "degrees": [degree_to_dict(d) for d in doctor.degrees],
        "hospitalAffiliations": [affiliation_to_dict(a) for a in doctor.hospital_affiliations],
        "availableTimeSlots": [time_slot_to_dict(s) for s in doctor.available_time_slots],
        "experience": doctor.experience,
        "consultationFee": doctor.consultation_fee,
        "location": doctor.location,
        "createdAt": doctor.created_at,
        "updatedAt": doctor.updated_at,
    }
    if include_sessions:
        data["sessions"] = [session_to_dict(s) for s in doctor.sessions]
    return data
