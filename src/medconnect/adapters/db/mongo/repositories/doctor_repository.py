"""
MongoDB implementation of DoctorRepository.

Each mutation is a single ``findOneAndUpdate`` against one doctor document:
the filter always pins ``doctor_id`` (plus the addressed sub-entity id for
positional updates), so a non-matching pair yields ``None`` instead of an
error.
"""

import logging
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from beanie.odm.enums import SortDirection
from beanie.odm.queries.update import UpdateResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from medconnect.application.dto.doctor_dto import DoctorListQuery, DoctorSearchCriteria, Page
from medconnect.application.ports.repositories.doctor_repo import DoctorRepository
from medconnect.core.exceptions import DatabaseError, DocumentValidationError, MedConnectException
from medconnect.domain.entities.doctor import Degree, Doctor, HospitalAffiliation, TimeSlot
from medconnect.domain.entities.session import Session
from medconnect.domain.enums.session import SessionStatus, SessionType
from ..models.doctor_m import (
    DegreeMongo,
    DoctorMongo,
    HospitalAffiliationMongo,
    SessionMongo,
    TimeSlotMongo,
)

logger = logging.getLogger(__name__)

SEARCH_SORT = [("experience", SortDirection.DESCENDING)]


@contextmanager
def _store_errors(operation: str, **details: Any) -> Iterator[None]:
    """Translate driver/ODM failures into application exceptions."""
    try:
        yield
    except MedConnectException:
        raise
    except DuplicateKeyError as e:
        raise DocumentValidationError(
            f"Duplicate key while trying to {operation}",
            details={**details, "duplicate_key": True},
            cause=e,
        ) from e
    except ValidationError as e:
        raise DocumentValidationError(
            f"Invalid document while trying to {operation}", details=details, cause=e
        ) from e
    except PyMongoError as e:
        logger.error(f"Failed to {operation}: {e}")
        raise DatabaseError(f"Failed to {operation}", details=details, cause=e) from e


def build_search_filter(criteria: DoctorSearchCriteria) -> Dict[str, Any]:
    """Conjunctive Mongo filter for doctor search. Absent criteria add nothing."""
    query: Dict[str, Any] = {}

    if criteria.name:
        pattern = {"$regex": re.escape(criteria.name.strip()), "$options": "i"}
        query["$or"] = [{"first_name": pattern}, {"last_name": pattern}]

    if criteria.specialization:
        query["specialization"] = {"$in": [criteria.specialization]}

    if criteria.language:
        query["languages"] = {"$in": [criteria.language]}

    if criteria.location:
        query["location"] = {"$regex": re.escape(criteria.location.strip()), "$options": "i"}

    if criteria.min_experience is not None:
        query["experience"] = {"$gte": criteria.min_experience}

    if criteria.max_fee is not None:
        query["consultation_fee"] = {"$lte": criteria.max_fee}

    return query


def parse_sort(sort: Optional[str]) -> List[Tuple[str, SortDirection]]:
    """``field`` sorts ascending, ``-field`` descending; defaults to newest first."""
    if not sort:
        return [("created_at", SortDirection.DESCENDING)]
    if sort.startswith("-"):
        return [(sort[1:], SortDirection.DESCENDING)]
    return [(sort, SortDirection.ASCENDING)]


def _skip(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


class MongoDoctorRepository(DoctorRepository):
    """MongoDB implementation of DoctorRepository."""

    async def create(self, doctor: Doctor) -> Doctor:
        doctor_mongo = self._domain_to_mongo(doctor)
        with _store_errors("create doctor", doctor_id=doctor.doctor_id):
            await doctor_mongo.insert()
        logger.info(f"Created doctor: {doctor.doctor_id}")
        return self._mongo_to_domain(doctor_mongo)

    async def find_by_id(self, doctor_id: str) -> Optional[Doctor]:
        with _store_errors("find doctor", doctor_id=doctor_id):
            doctor_mongo = await DoctorMongo.find_one(DoctorMongo.doctor_id == doctor_id)
        return self._mongo_to_domain(doctor_mongo) if doctor_mongo else None

    async def find_by_email(self, email: str) -> Optional[Doctor]:
        with _store_errors("find doctor by email"):
            doctor_mongo = await DoctorMongo.find_one(DoctorMongo.email == email)
        return self._mongo_to_domain(doctor_mongo) if doctor_mongo else None

    async def update_fields(self, doctor_id: str, fields: Dict[str, Any]) -> Optional[Doctor]:
        doctor_mongo = await self._update(
            "update doctor", {"doctor_id": doctor_id}, {"$set": dict(fields)}
        )
        return self._mongo_to_domain(doctor_mongo) if doctor_mongo else None

    async def set_verified(self, doctor_id: str) -> Optional[Doctor]:
        return await self.update_fields(doctor_id, {"is_verified": True})

    async def update_password(self, doctor_id: str, password: str, salt: str) -> Optional[Doctor]:
        return await self.update_fields(doctor_id, {"password": password, "salt": salt})

    async def delete(self, doctor_id: str) -> int:
        with _store_errors("delete doctor", doctor_id=doctor_id):
            result = await DoctorMongo.find(DoctorMongo.doctor_id == doctor_id).delete()
        return result.deleted_count if result else 0

    # Availability

    async def add_time_slots(self, doctor_id: str, slots: List[TimeSlot]) -> Optional[List[TimeSlot]]:
        doctor_mongo = await self._update(
            "add time slots",
            {"doctor_id": doctor_id},
            {"$push": {"available_time_slots": {"$each": [self._slot_doc(s) for s in slots]}}},
        )
        return self._slots(doctor_mongo)

    async def replace_time_slot(
        self, doctor_id: str, slot_id: str, slot: TimeSlot
    ) -> Optional[List[TimeSlot]]:
        doctor_mongo = await self._update(
            "update time slot",
            {"doctor_id": doctor_id, "available_time_slots.slot_id": slot_id},
            {"$set": {"available_time_slots.$": self._slot_doc(slot)}},
        )
        return self._slots(doctor_mongo)

    async def remove_time_slot(self, doctor_id: str, slot_id: str) -> Optional[List[TimeSlot]]:
        doctor_mongo = await self._update(
            "remove time slot",
            {"doctor_id": doctor_id, "available_time_slots.slot_id": slot_id},
            {"$pull": {"available_time_slots": {"slot_id": slot_id}}},
        )
        return self._slots(doctor_mongo)

    # Sessions

    async def add_session(self, doctor_id: str, session: Session) -> Optional[Session]:
        doctor_mongo = await self._update(
            "add session",
            {"doctor_id": doctor_id},
            {"$push": {"sessions": self._session_doc(session)}},
        )
        return self._session_from(doctor_mongo, session.session_id)

    async def update_session(
        self, doctor_id: str, session_id: str, fields: Dict[str, Any]
    ) -> Optional[Session]:
        changes = {
            f"sessions.$.{key}": value.value if isinstance(value, SessionType) else value
            for key, value in fields.items()
        }
        changes["sessions.$.updated_at"] = datetime.utcnow()
        doctor_mongo = await self._update(
            "update session",
            {"doctor_id": doctor_id, "sessions.session_id": session_id},
            {"$set": changes},
        )
        return self._session_from(doctor_mongo, session_id)

    async def set_session_status(
        self,
        doctor_id: str,
        session_id: str,
        status: SessionStatus,
        notes: Optional[str] = None,
    ) -> Optional[Session]:
        changes: Dict[str, Any] = {
            "sessions.$.status": status.value,
            "sessions.$.updated_at": datetime.utcnow(),
        }
        if notes is not None:
            changes["sessions.$.notes"] = notes
        doctor_mongo = await self._update(
            "update session status",
            {"doctor_id": doctor_id, "sessions.session_id": session_id},
            {"$set": changes},
        )
        return self._session_from(doctor_mongo, session_id)

    async def list_sessions(
        self, doctor_id: str, status: Optional[SessionStatus] = None
    ) -> Optional[List[Session]]:
        doctor = await self.find_by_id(doctor_id)
        if not doctor:
            return None
        if status is None:
            return doctor.sessions
        return [s for s in doctor.sessions if s.status == status]

    async def find_session(self, doctor_id: str, session_id: str) -> Optional[Session]:
        doctor = await self.find_by_id(doctor_id)
        return doctor.find_session(session_id) if doctor else None

    async def list_sessions_for_patient(
        self, doctor_id: str, patient_id: str
    ) -> Optional[List[Session]]:
        doctor = await self.find_by_id(doctor_id)
        if not doctor:
            return None
        return [s for s in doctor.sessions if s.patient_id == patient_id]

    # Professional records

    async def add_degree(self, doctor_id: str, degree: Degree) -> Optional[List[Degree]]:
        doctor_mongo = await self._upsert_embedded(
            doctor_id, "degrees", "degree_id", DegreeMongo(**vars(degree)).model_dump()
        )
        return self._degrees(doctor_mongo)

    async def replace_degree(
        self, doctor_id: str, degree_id: str, degree: Degree
    ) -> Optional[List[Degree]]:
        doctor_mongo = await self._upsert_embedded(
            doctor_id, "degrees", "degree_id", DegreeMongo(**vars(degree)).model_dump(), degree_id
        )
        return self._degrees(doctor_mongo)

    async def remove_degree(self, doctor_id: str, degree_id: str) -> Optional[List[Degree]]:
        doctor_mongo = await self._update(
            "remove degree",
            {"doctor_id": doctor_id, "degrees.degree_id": degree_id},
            {"$pull": {"degrees": {"degree_id": degree_id}}},
        )
        return self._degrees(doctor_mongo)

    async def add_affiliation(
        self, doctor_id: str, affiliation: HospitalAffiliation
    ) -> Optional[List[HospitalAffiliation]]:
        doctor_mongo = await self._upsert_embedded(
            doctor_id,
            "hospital_affiliations",
            "affiliation_id",
            HospitalAffiliationMongo(**vars(affiliation)).model_dump(),
        )
        return self._affiliations(doctor_mongo)

    async def replace_affiliation(
        self, doctor_id: str, affiliation_id: str, affiliation: HospitalAffiliation
    ) -> Optional[List[HospitalAffiliation]]:
        doctor_mongo = await self._upsert_embedded(
            doctor_id,
            "hospital_affiliations",
            "affiliation_id",
            HospitalAffiliationMongo(**vars(affiliation)).model_dump(),
            affiliation_id,
        )
        return self._affiliations(doctor_mongo)

    async def remove_affiliation(
        self, doctor_id: str, affiliation_id: str
    ) -> Optional[List[HospitalAffiliation]]:
        doctor_mongo = await self._update(
            "remove hospital affiliation",
            {"doctor_id": doctor_id, "hospital_affiliations.affiliation_id": affiliation_id},
            {"$pull": {"hospital_affiliations": {"affiliation_id": affiliation_id}}},
        )
        return self._affiliations(doctor_mongo)

    async def replace_specializations(
        self, doctor_id: str, specializations: List[str]
    ) -> Optional[List[str]]:
        doctor = await self.update_fields(doctor_id, {"specialization": list(specializations)})
        return doctor.specialization if doctor else None

    async def replace_languages(self, doctor_id: str, languages: List[str]) -> Optional[List[str]]:
        doctor = await self.update_fields(doctor_id, {"languages": list(languages)})
        return doctor.languages if doctor else None

    # Directory

    async def search(self, criteria: DoctorSearchCriteria) -> Page[Doctor]:
        query = build_search_filter(criteria)
        # Count and fetch are separate round-trips; total can drift under concurrent writes.
        with _store_errors("search doctors"):
            docs = (
                await DoctorMongo.find(query)
                .sort(SEARCH_SORT)
                .skip(_skip(criteria.page, criteria.limit))
                .limit(criteria.limit)
                .to_list()
            )
            total = await DoctorMongo.find(query).count()
        return Page(
            items=[self._mongo_to_domain(d) for d in docs],
            total=total,
            page=criteria.page,
            limit=criteria.limit,
        )

    async def list_doctors(self, query: DoctorListQuery) -> Page[Doctor]:
        filters = dict(query.filters or {})
        with _store_errors("list doctors"):
            docs = (
                await DoctorMongo.find(filters)
                .sort(parse_sort(query.sort))
                .skip(_skip(query.page, query.limit))
                .limit(query.limit)
                .to_list()
            )
            total = await DoctorMongo.find(filters).count()
        return Page(
            items=[self._mongo_to_domain(d) for d in docs],
            total=total,
            page=query.page,
            limit=query.limit,
        )

    # Internals

    async def _update(
        self, operation: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> Optional[DoctorMongo]:
        """Apply one atomic update and return the document after it, or None."""
        update = dict(update)
        update.setdefault("$set", {})
        update["$set"] = {**update["$set"], "updated_at": datetime.utcnow()}
        with _store_errors(operation, doctor_id=query.get("doctor_id")):
            return await DoctorMongo.find_one(query).update(
                update, response_type=UpdateResponse.NEW_DOCUMENT
            )

    async def _upsert_embedded(
        self,
        doctor_id: str,
        array: str,
        id_field: str,
        item: Dict[str, Any],
        item_id: Optional[str] = None,
    ) -> Optional[DoctorMongo]:
        """Append ``item`` to ``array``, or replace the element whose id is ``item_id``."""
        if item_id is None:
            return await self._update(
                f"add to {array}", {"doctor_id": doctor_id}, {"$push": {array: item}}
            )
        return await self._update(
            f"update {array}",
            {"doctor_id": doctor_id, f"{array}.{id_field}": item_id},
            {"$set": {f"{array}.$": item}},
        )

    @staticmethod
    def _slot_doc(slot: TimeSlot) -> Dict[str, Any]:
        return TimeSlotMongo(**vars(slot)).model_dump()

    @staticmethod
    def _session_doc(session: Session) -> Dict[str, Any]:
        return SessionMongo(
            session_id=session.session_id,
            patient_id=session.patient_id,
            type=session.type.value,
            date=session.date,
            time_slot=session.time_slot,
            session_link=session.session_link,
            duration=session.duration,
            status=session.status.value,
            notes=session.notes,
            created_at=session.created_at,
            updated_at=session.updated_at,
        ).model_dump()

    def _slots(self, doctor_mongo: Optional[DoctorMongo]) -> Optional[List[TimeSlot]]:
        if not doctor_mongo:
            return None
        return [TimeSlot(**s.model_dump()) for s in doctor_mongo.available_time_slots]

    def _degrees(self, doctor_mongo: Optional[DoctorMongo]) -> Optional[List[Degree]]:
        if not doctor_mongo:
            return None
        return [Degree(**d.model_dump()) for d in doctor_mongo.degrees]

    def _affiliations(self, doctor_mongo: Optional[DoctorMongo]) -> Optional[List[HospitalAffiliation]]:
        if not doctor_mongo:
            return None
        return [HospitalAffiliation(**a.model_dump()) for a in doctor_mongo.hospital_affiliations]

    def _session_from(self, doctor_mongo: Optional[DoctorMongo], session_id: str) -> Optional[Session]:
        if not doctor_mongo:
            return None
        for session_mongo in doctor_mongo.sessions:
            if session_mongo.session_id == session_id:
                return self._session_to_domain(session_mongo)
        return None

    @staticmethod
    def _session_to_domain(session_mongo: SessionMongo) -> Session:
        return Session(
            session_id=session_mongo.session_id,
            patient_id=session_mongo.patient_id,
            type=SessionType.parse(session_mongo.type) or SessionType.ONLINE,
            date=session_mongo.date,
            time_slot=session_mongo.time_slot,
            session_link=session_mongo.session_link,
            duration=session_mongo.duration,
            status=SessionStatus(session_mongo.status),
            notes=session_mongo.notes,
            created_at=session_mongo.created_at,
            updated_at=session_mongo.updated_at,
        )

    def _domain_to_mongo(self, doctor: Doctor) -> DoctorMongo:
        """Convert domain entity to MongoDB model."""
        return DoctorMongo(
            doctor_id=doctor.doctor_id,
            email=doctor.email,
            password=doctor.password,
            salt=doctor.salt,
            first_name=doctor.first_name,
            middle_name=doctor.middle_name,
            last_name=doctor.last_name,
            gender=doctor.gender,
            dob=doctor.dob,
            mobile_no=doctor.mobile_no,
            country_calling_code=doctor.country_calling_code,
            about_doctor=doctor.about_doctor,
            profile_image_url=doctor.profile_image_url,
            is_verified=doctor.is_verified,
            languages=list(doctor.languages),
            specialization=list(doctor.specialization),
            degrees=[DegreeMongo(**vars(d)) for d in doctor.degrees],
            hospital_affiliations=[HospitalAffiliationMongo(**vars(a)) for a in doctor.hospital_affiliations],
            available_time_slots=[TimeSlotMongo(**vars(s)) for s in doctor.available_time_slots],
            experience=doctor.experience,
            consultation_fee=doctor.consultation_fee,
            location=doctor.location,
            sessions=[SessionMongo(**self._session_doc(s)) for s in doctor.sessions],
            created_at=doctor.created_at,
            updated_at=doctor.updated_at,
        )

    def _mongo_to_domain(self, doctor_mongo: DoctorMongo) -> Doctor:
        """Convert MongoDB model to domain entity."""
        return Doctor(
            doctor_id=doctor_mongo.doctor_id,
            email=doctor_mongo.email,
            password=doctor_mongo.password,
            salt=doctor_mongo.salt,
            first_name=doctor_mongo.first_name,
            middle_name=doctor_mongo.middle_name,
            last_name=doctor_mongo.last_name,
            gender=doctor_mongo.gender,
            dob=doctor_mongo.dob,
            mobile_no=doctor_mongo.mobile_no,
            country_calling_code=doctor_mongo.country_calling_code,
            about_doctor=doctor_mongo.about_doctor,
            profile_image_url=doctor_mongo.profile_image_url,
            is_verified=doctor_mongo.is_verified,
            languages=list(doctor_mongo.languages),
            specialization=list(doctor_mongo.specialization),
            degrees=self._degrees(doctor_mongo) or [],
            hospital_affiliations=self._affiliations(doctor_mongo) or [],
            available_time_slots=self._slots(doctor_mongo) or [],
            experience=doctor_mongo.experience,
            consultation_fee=doctor_mongo.consultation_fee,
            location=doctor_mongo.location,
            sessions=[self._session_to_domain(s) for s in doctor_mongo.sessions],
            created_at=doctor_mongo.created_at,
            updated_at=doctor_mongo.updated_at,
        )
