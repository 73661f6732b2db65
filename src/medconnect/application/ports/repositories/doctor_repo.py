"""
Doctor repository interface for data access abstraction.

Every mutation is scoped by ``doctor_id`` (and a sub-entity id where one is
addressed). A ``None`` return means the (doctor, sub-id) pair did not match;
implementations never raise for not-found.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ....domain.entities.doctor import Degree, Doctor, HospitalAffiliation, TimeSlot
from ....domain.entities.session import Session
from ....domain.enums.session import SessionStatus
from ...dto.doctor_dto import DoctorListQuery, DoctorSearchCriteria, Page


class DoctorRepository(ABC):
    """Abstract repository for doctor data access."""

    @abstractmethod
    async def create(self, doctor: Doctor) -> Doctor:
        """Persist a new doctor."""
        pass

    @abstractmethod
    async def find_by_id(self, doctor_id: str) -> Optional[Doctor]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Doctor]:
        pass

    @abstractmethod
    async def update_fields(self, doctor_id: str, fields: Dict[str, Any]) -> Optional[Doctor]:
        """Set top-level fields (snake_case names) and return the updated doctor."""
        pass

    @abstractmethod
    async def set_verified(self, doctor_id: str) -> Optional[Doctor]:
        pass

    @abstractmethod
    async def update_password(self, doctor_id: str, password: str, salt: str) -> Optional[Doctor]:
        pass

    @abstractmethod
    async def delete(self, doctor_id: str) -> int:
        """Hard-delete a doctor. Returns the number of deleted documents."""
        pass

    # Availability

    @abstractmethod
    async def add_time_slots(self, doctor_id: str, slots: List[TimeSlot]) -> Optional[List[TimeSlot]]:
        """Append slots and return the doctor's full slot list."""
        pass

    @abstractmethod
    async def replace_time_slot(
        self, doctor_id: str, slot_id: str, slot: TimeSlot
    ) -> Optional[List[TimeSlot]]:
        pass

    @abstractmethod
    async def remove_time_slot(self, doctor_id: str, slot_id: str) -> Optional[List[TimeSlot]]:
        pass

    # Sessions

    @abstractmethod
    async def add_session(self, doctor_id: str, session: Session) -> Optional[Session]:
        pass

    @abstractmethod
    async def update_session(
        self, doctor_id: str, session_id: str, fields: Dict[str, Any]
    ) -> Optional[Session]:
        """Set individual session fields (snake_case names) in place."""
        pass

    @abstractmethod
    async def set_session_status(
        self,
        doctor_id: str,
        session_id: str,
        status: SessionStatus,
        notes: Optional[str] = None,
    ) -> Optional[Session]:
        pass

    @abstractmethod
    async def list_sessions(
        self, doctor_id: str, status: Optional[SessionStatus] = None
    ) -> Optional[List[Session]]:
        """Sessions in insertion order, or None when the doctor is absent."""
        pass

    @abstractmethod
    async def find_session(self, doctor_id: str, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def list_sessions_for_patient(
        self, doctor_id: str, patient_id: str
    ) -> Optional[List[Session]]:
        pass

    # Professional records

    @abstractmethod
    async def add_degree(self, doctor_id: str, degree: Degree) -> Optional[List[Degree]]:
        pass

    @abstractmethod
    async def replace_degree(
        self, doctor_id: str, degree_id: str, degree: Degree
    ) -> Optional[List[Degree]]:
        pass

    @abstractmethod
    async def remove_degree(self, doctor_id: str, degree_id: str) -> Optional[List[Degree]]:
        pass

    @abstractmethod
    async def add_affiliation(
        self, doctor_id: str, affiliation: HospitalAffiliation
    ) -> Optional[List[HospitalAffiliation]]:
        pass

    @abstractmethod
    async def replace_affiliation(
        self, doctor_id: str, affiliation_id: str, affiliation: HospitalAffiliation
    ) -> Optional[List[HospitalAffiliation]]:
        pass

    @abstractmethod
    async def remove_affiliation(
        self, doctor_id: str, affiliation_id: str
    ) -> Optional[List[HospitalAffiliation]]:
        pass

    @abstractmethod
    async def replace_specializations(
        self, doctor_id: str, specializations: List[str]
    ) -> Optional[List[str]]:
        pass

    @abstractmethod
    async def replace_languages(self, doctor_id: str, languages: List[str]) -> Optional[List[str]]:
        pass

    # Directory

    @abstractmethod
    async def search(self, criteria: DoctorSearchCriteria) -> Page[Doctor]:
        """Conjunctive search sorted by experience, most experienced first."""
        pass

    @abstractmethod
    async def list_doctors(self, query: DoctorListQuery) -> Page[Doctor]:
        pass
