"""MongoDB Beanie model for Doctor documents.

Sessions, availability, degrees and affiliations are embedded in the doctor
document so every mutation is a single-document update.
"""

from datetime import datetime
from typing import List, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class TimeSlotMongo(BaseModel):
    """Embedded weekly availability slot."""
    slot_id: str = Field(..., description="Stable slot ID")
    day: str = Field(..., description="Day of week")
    time_slot: str = Field(..., description="Time range label, e.g. 10:00-10:30")
    consultation_fee: float = Field(..., description="Fee for this slot")


class DegreeMongo(BaseModel):
    degree_id: str = Field(..., description="Stable degree ID")
    degree_name: str = Field(..., description="Degree name")
    institution: Optional[str] = None
    year_of_completion: Optional[int] = None
    verified_proof: Optional[str] = Field(None, description="URL of the uploaded proof")


class HospitalAffiliationMongo(BaseModel):
    affiliation_id: str = Field(..., description="Stable affiliation ID")
    name: str = Field(..., description="Hospital name")
    location: Optional[str] = None


class SessionMongo(BaseModel):
    """Embedded patient session."""
    session_id: str = Field(..., description="Application-issued session ID")
    patient_id: str = Field(..., description="Patient reference (not validated)")
    type: str = Field(..., description="In-person or Online")
    date: datetime = Field(..., description="Session date")
    time_slot: str = Field(..., description="Time range label")
    session_link: str = Field(..., description="Video room identifier")
    duration: int = Field(..., description="Duration in minutes")
    status: str = Field(default="scheduled", description="scheduled, completed, cancelled")
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class DoctorMongo(Document):
    """MongoDB model for Doctor entity."""

    doctor_id: Indexed(str, unique=True) = Field(..., description="Doctor ID")
    email: Indexed(str, unique=True) = Field(..., description="Login email")
    password: str = Field(..., description="Salted password hash")
    salt: str = Field(..., description="Per-record password salt")
    first_name: str = Field(..., description="First name")
    middle_name: Optional[str] = None
    last_name: str = Field(..., description="Last name")
    gender: Optional[str] = Field(None, description="male, female or other")
    dob: Optional[datetime] = None
    mobile_no: Optional[str] = None
    country_calling_code: Optional[str] = None
    about_doctor: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_verified: bool = Field(default=False, description="Email verified")
    languages: List[str] = Field(default_factory=list)
    specialization: List[str] = Field(default_factory=list)
    degrees: List[DegreeMongo] = Field(default_factory=list)
    hospital_affiliations: List[HospitalAffiliationMongo] = Field(default_factory=list)
    available_time_slots: List[TimeSlotMongo] = Field(default_factory=list)
    experience: int = Field(default=0, description="Years of experience")
    consultation_fee: Optional[float] = None
    location: Optional[str] = None
    sessions: List[SessionMongo] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "doctors"
        indexes = [
            "specialization",
            "languages",
            "experience",
            "created_at",
        ]
