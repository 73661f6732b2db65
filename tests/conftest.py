"""
Shared fixtures: an in-memory doctor store, a recording notifier and a
TestClient wired to both through dependency overrides.
"""

import copy
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from medconnect.api.deps import get_doctor_service
from medconnect.app import app
from medconnect.application.dto.doctor_dto import DoctorListQuery, DoctorSearchCriteria, Page
from medconnect.application.ports.repositories.doctor_repo import DoctorRepository
from medconnect.application.ports.services.notification_service import NotificationService
from medconnect.application.services.doctor_service import DoctorService
from medconnect.core.config import SecuritySettings, Settings
from medconnect.core.exceptions import DocumentValidationError, NotificationError
from medconnect.core.utils.crypto import PURPOSE_ACCESS, get_token_service
from medconnect.domain.value_objects.identity import DoctorIdentity


class InMemoryDoctorRepository(DoctorRepository):
    """Dict-backed store. Returns copies so callers never alias stored state."""

    def __init__(self):
        self.doctors: Dict[str, Any] = {}

    def _get(self, doctor_id):
        return self.doctors.get(doctor_id)

    def _touch(self, doctor):
        doctor.updated_at = datetime.utcnow()

    async def create(self, doctor):
        if any(d.email == doctor.email for d in self.doctors.values()):
            raise DocumentValidationError("Duplicate key", details={"duplicate_key": True})
        self.doctors[doctor.doctor_id] = copy.deepcopy(doctor)
        return copy.deepcopy(doctor)

    async def find_by_id(self, doctor_id):
        doctor = self._get(doctor_id)
        return copy.deepcopy(doctor) if doctor else None

    async def find_by_email(self, email):
        for doctor in self.doctors.values():
            if doctor.email == email:
                return copy.deepcopy(doctor)
        return None

    async def update_fields(self, doctor_id, fields):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        for key, value in fields.items():
            setattr(doctor, key, value)
        self._touch(doctor)
        return copy.deepcopy(doctor)

    async def set_verified(self, doctor_id):
        return await self.update_fields(doctor_id, {"is_verified": True})

    async def update_password(self, doctor_id, password, salt):
        return await self.update_fields(doctor_id, {"password": password, "salt": salt})

    async def delete(self, doctor_id):
        return 1 if self.doctors.pop(doctor_id, None) else 0

    # Embedded arrays

    def _append(self, doctor_id, attr, items):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        getattr(doctor, attr).extend(copy.deepcopy(items))
        self._touch(doctor)
        return copy.deepcopy(getattr(doctor, attr))

    def _replace(self, doctor_id, attr, id_attr, item_id, item):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        items = getattr(doctor, attr)
        for index, existing in enumerate(items):
            if getattr(existing, id_attr) == item_id:
                items[index] = copy.deepcopy(item)
                self._touch(doctor)
                return copy.deepcopy(items)
        return None

    def _remove(self, doctor_id, attr, id_attr, item_id):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        items = getattr(doctor, attr)
        if not any(getattr(existing, id_attr) == item_id for existing in items):
            return None
        setattr(doctor, attr, [i for i in items if getattr(i, id_attr) != item_id])
        self._touch(doctor)
        return copy.deepcopy(getattr(doctor, attr))

    async def add_time_slots(self, doctor_id, slots):
        return self._append(doctor_id, "available_time_slots", slots)

    async def replace_time_slot(self, doctor_id, slot_id, slot):
        return self._replace(doctor_id, "available_time_slots", "slot_id", slot_id, slot)

    async def remove_time_slot(self, doctor_id, slot_id):
        return self._remove(doctor_id, "available_time_slots", "slot_id", slot_id)

    async def add_session(self, doctor_id, session):
        sessions = self._append(doctor_id, "sessions", [session])
        return sessions[-1] if sessions else None

    def _stored_session(self, doctor_id, session_id):
        doctor = self._get(doctor_id)
        return doctor.find_session(session_id) if doctor else None

    async def update_session(self, doctor_id, session_id, fields):
        session = self._stored_session(doctor_id, session_id)
        if not session:
            return None
        for key, value in fields.items():
            setattr(session, key, value)
        session.updated_at = datetime.utcnow()
        return copy.deepcopy(session)

    async def set_session_status(self, doctor_id, session_id, status, notes=None):
        fields = {"status": status}
        if notes is not None:
            fields["notes"] = notes
        return await self.update_session(doctor_id, session_id, fields)

    async def list_sessions(self, doctor_id, status=None):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        return [copy.deepcopy(s) for s in doctor.sessions if status is None or s.status == status]

    async def find_session(self, doctor_id, session_id):
        session = self._stored_session(doctor_id, session_id)
        return copy.deepcopy(session) if session else None

    async def list_sessions_for_patient(self, doctor_id, patient_id):
        doctor = self._get(doctor_id)
        if not doctor:
            return None
        return [copy.deepcopy(s) for s in doctor.sessions if s.patient_id == patient_id]

    async def add_degree(self, doctor_id, degree):
        return self._append(doctor_id, "degrees", [degree])

    async def replace_degree(self, doctor_id, degree_id, degree):
        return self._replace(doctor_id, "degrees", "degree_id", degree_id, degree)

    async def remove_degree(self, doctor_id, degree_id):
        return self._remove(doctor_id, "degrees", "degree_id", degree_id)

    async def add_affiliation(self, doctor_id, affiliation):
        return self._append(doctor_id, "hospital_affiliations", [affiliation])

    async def replace_affiliation(self, doctor_id, affiliation_id, affiliation):
        return self._replace(
            doctor_id, "hospital_affiliations", "affiliation_id", affiliation_id, affiliation
        )

    async def remove_affiliation(self, doctor_id, affiliation_id):
        return self._remove(doctor_id, "hospital_affiliations", "affiliation_id", affiliation_id)

    async def replace_specializations(self, doctor_id, specializations):
        doctor = await self.update_fields(doctor_id, {"specialization": list(specializations)})
        return doctor.specialization if doctor else None

    async def replace_languages(self, doctor_id, languages):
        doctor = await self.update_fields(doctor_id, {"languages": list(languages)})
        return doctor.languages if doctor else None

    # Directory

    def _paginate(self, doctors: List[Any], page: int, limit: int) -> Page:
        start = (max(page, 1) - 1) * limit
        items = [copy.deepcopy(d) for d in doctors[start:start + limit]]
        return Page(items=items, total=len(doctors), page=page, limit=limit)

    async def search(self, criteria: DoctorSearchCriteria) -> Page:
        def matches(doctor) -> bool:
            if criteria.name:
                needle = criteria.name.strip().lower()
                if needle not in doctor.first_name.lower() and needle not in doctor.last_name.lower():
                    return False
            if criteria.specialization and criteria.specialization not in doctor.specialization:
                return False
            if criteria.language and criteria.language not in doctor.languages:
                return False
            if criteria.location and criteria.location.lower() not in (doctor.location or "").lower():
                return False
            if criteria.min_experience is not None and doctor.experience < criteria.min_experience:
                return False
            if criteria.max_fee is not None and (
                doctor.consultation_fee is None or doctor.consultation_fee > criteria.max_fee
            ):
                return False
            return True

        found = sorted(
            (d for d in self.doctors.values() if matches(d)),
            key=lambda d: d.experience,
            reverse=True,
        )
        return self._paginate(found, criteria.page, criteria.limit)

    async def list_doctors(self, query: DoctorListQuery) -> Page:
        def matches(doctor) -> bool:
            for key, value in query.filters.items():
                stored = getattr(doctor, key)
                if isinstance(stored, list):
                    if value not in stored:
                        return False
                elif stored != value:
                    return False
            return True

        sort = query.sort or "-created_at"
        field_name = sort.lstrip("-")
        found = sorted(
            (d for d in self.doctors.values() if matches(d)),
            key=lambda d: getattr(d, field_name),
            reverse=sort.startswith("-"),
        )
        return self._paginate(found, query.page, query.limit)


class RecordingNotifier(NotificationService):
    """Captures every send; set ``fail`` to make every send raise."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail = False

    async def send(self, template, recipient, variables):
        if self.fail:
            raise NotificationError("relay unavailable")
        self.sent.append({"template": template, "recipient": recipient, "variables": dict(variables)})

    def templates(self) -> List[str]:
        return [m["template"] for m in self.sent]

    def last_link(self, template: str) -> Optional[str]:
        for message in reversed(self.sent):
            if message["template"] == template:
                return message["variables"]["Link"]
        return None


def token_from_link(link: str) -> str:
    return link.rstrip("/").rsplit("/", 1)[-1]


@pytest.fixture
def repository():
    return InMemoryDoctorRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    # Fewer PBKDF2 rounds keep the suite fast.
    return Settings(security=SecuritySettings(password_hash_iterations=1_000))


@pytest.fixture
def service(repository, notifier, settings):
    return DoctorService(repository, notifier, token_service=get_token_service(), settings=settings)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_doctor_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(doctor_id: str, email: str) -> Dict[str, str]:
    identity = DoctorIdentity(doctor_id, email, "Ada", "Lovelace")
    token = get_token_service().issue(identity.to_claims(), PURPOSE_ACCESS)
    return {"Authorization": f"Bearer {token}"}


REGISTRATION = {
    "email": "a@b.com",
    "password": "s3cret-pass",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "specialization": ["Cardiology"],
    "languages": ["English"],
    "experience": 12,
    "consultationFee": 80,
    "location": "New York",
}
