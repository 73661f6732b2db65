"""Doctor service: validation, business rules and notification side effects.

Every public method returns a ``ServiceResult``. Client mistakes (400),
not-found (404) and auth failures (401) are return values; only unexpected
store or downstream failures propagate as ``MedConnectException`` subclasses.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ...core.config import Settings, get_settings
from ...core.exceptions import DocumentValidationError
from ...core.utils.crypto import PURPOSE_ACCESS, PURPOSE_RESET, PURPOSE_VERIFY, TokenService
from ...core.utils.crypto_utils import generate_salt, hash_password, verify_password
from ...domain.entities.doctor import Degree, Doctor, HospitalAffiliation, TimeSlot
from ...domain.entities.session import Session
from ...domain.enums.session import SessionStatus, SessionType
from ...domain.errors import DomainError
from ...domain.value_objects.identity import DoctorIdentity
from ..dto.doctor_dto import (
    AffiliationData,
    BookSessionRequest,
    DegreeData,
    DoctorListQuery,
    DoctorSearchCriteria,
    RegisterDoctorRequest,
    TimeSlotData,
    affiliation_to_dict,
    degree_to_dict,
    doctor_to_dict,
    session_to_dict,
    time_slot_to_dict,
)
from ..dto.service_result import NotificationOutcome, ServiceResult, result
from ..ports.repositories.doctor_repo import DoctorRepository
from ..ports.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Fields a doctor may change through the generic profile update.
PROFILE_FIELDS = frozenset(
    {
        "first_name",
        "middle_name",
        "last_name",
        "gender",
        "dob",
        "mobile_no",
        "country_calling_code",
        "about_doctor",
        "profile_image_url",
        "languages",
        "specialization",
        "experience",
        "consultation_fee",
        "location",
    }
)

# Fields a generic session update may touch; session_id and status never change here.
SESSION_UPDATE_FIELDS = frozenset({"patient_id", "type", "date", "time_slot", "duration", "notes"})

# Public directory: camelCase query names -> stored field names.
LISTING_FILTERS = {
    "specialization": "specialization",
    "languages": "languages",
    "location": "location",
    "gender": "gender",
    "isVerified": "is_verified",
}
LISTING_SORT_FIELDS = {
    "createdAt": "created_at",
    "experience": "experience",
    "consultationFee": "consultation_fee",
    "firstName": "first_name",
    "lastName": "last_name",
}
DEFAULT_LISTING_SORT = "-created_at"

GENERIC_RESET_MESSAGE = (
    "If your email is registered and verified, you will receive password reset instructions"
)


def _coerce_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _clean_list(values: Optional[List[str]]) -> List[str]:
    return [v.strip() for v in (values or []) if isinstance(v, str) and v.strip()]


class DoctorService:
    """Doctor-facing operations over a ``DoctorRepository``."""

    def __init__(
        self,
        repository: DoctorRepository,
        notifier: NotificationService,
        token_service: Optional[TokenService] = None,
        settings: Optional[Settings] = None,
    ):
        self._repository = repository
        self._notifier = notifier
        self._settings = settings or get_settings()
        self._tokens = token_service or TokenService(self._settings.security)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _hash(self, password: str, salt: str) -> str:
        return hash_password(password, salt, self._settings.security.password_hash_iterations)

    def _check_password(self, doctor: Doctor, password: str) -> bool:
        return verify_password(
            password, doctor.password, doctor.salt, self._settings.security.password_hash_iterations
        )

    def _link(self, path: str, token: str) -> str:
        return f"{self._settings.frontend_url.rstrip('/')}/doctor/{path}/{token}"

    async def _notify(self, template: str, recipient: str, variables: Dict[str, str]) -> NotificationOutcome:
        """Send one mail; failures are logged and reported, never raised."""
        try:
            await self._notifier.send(template, recipient, variables)
        except Exception as e:
            logger.warning(f"Failed to send {template} to {recipient}: {e}", exc_info=True)
            return NotificationOutcome(template, recipient, delivered=False, error=str(e))
        return NotificationOutcome(template, recipient, delivered=True)

    def _patient_notice(self, template: str, session: Session) -> NotificationOutcome:
        # Patient contact details live outside this service; the notice is logged only.
        logger.info(
            f"{template} for patient {session.patient_id} (session {session.session_id}) not sent: "
            "no patient contact channel configured"
        )
        return NotificationOutcome(
            template,
            session.patient_id,
            delivered=False,
            error="Patient contact details unavailable",
        )

    # ------------------------------------------------------------------
    # registration & authentication
    # ------------------------------------------------------------------

    async def register(self, request: RegisterDoctorRequest) -> ServiceResult:
        """Create an unverified doctor and send the welcome and verification mails."""
        if not (request.email and request.password and request.first_name and request.last_name):
            return result(400, "Please provide all required information.")

        specialization = _clean_list(request.specialization)
        if not specialization:
            return result(400, "Please provide at least one specialization.")

        languages = _clean_list(request.languages)
        if not languages:
            return result(400, "Please provide at least one language.")

        email = request.email.strip().lower()
        if await self._repository.find_by_email(email):
            return result(400, "Doctor already registered with this email.")

        salt = generate_salt()
        try:
            doctor = Doctor(
                email=email,
                password=self._hash(request.password, salt),
                salt=salt,
                first_name=request.first_name.strip(),
                last_name=request.last_name.strip(),
                middle_name=request.middle_name,
                gender=request.gender,
                dob=_coerce_date(request.dob),
                mobile_no=request.mobile_no,
                country_calling_code=request.country_calling_code,
                about_doctor=request.about_doctor,
                languages=languages,
                specialization=specialization,
                experience=request.experience or 0,
                consultation_fee=request.consultation_fee,
                location=request.location,
            )
        except DomainError as e:
            return result(400, e.message)

        try:
            doctor = await self._repository.create(doctor)
        except DocumentValidationError as e:
            # Lost a race with a concurrent registration for the same email.
            if e.details.get("duplicate_key"):
                return result(400, "Doctor already registered with this email.")
            raise

        identity = DoctorIdentity(doctor.doctor_id, doctor.email, doctor.first_name, doctor.last_name)
        token = self._tokens.issue(identity.to_claims(), PURPOSE_VERIFY)
        variables = {"Name": doctor.display_name, "Link": self._link("verify", token)}

        notifications = [
            await self._notify("welcomeMail", doctor.email, variables),
            await self._notify("verificationLinkMail", doctor.email, variables),
        ]
        logger.info(f"Registered doctor {doctor.doctor_id}")

        return ServiceResult(
            status=201,
            message="Doctor registered successfully! Please verify your email address.",
            payload={
                "doctorId": doctor.doctor_id,
                "verificationEmailSent": notifications[1].delivered,
            },
            notifications=notifications,
        )

    async def login(self, email: Optional[str], password: Optional[str]) -> ServiceResult:
        if not email or not password:
            return result(400, "Please provide email and password")

        doctor = await self._repository.find_by_email(email.strip().lower())
        if not doctor:
            return result(404, "Doctor not found")

        if not doctor.is_verified:
            return result(401, "Your account is not verified. Please check your email.")

        if not self._check_password(doctor, password):
            return result(400, "Invalid password")

        identity = DoctorIdentity(doctor.doctor_id, doctor.email, doctor.first_name, doctor.last_name)
        token = self._tokens.issue(identity.to_claims(), PURPOSE_ACCESS)
        return result(200, "Login successful", token=token)

    async def verify_email(self, token: Optional[str]) -> ServiceResult:
        """Mark the doctor in a verification token as verified (idempotent)."""
        if not token:
            return result(401, "Verification token is missing")

        claims = self._tokens.decode(token, PURPOSE_VERIFY)
        if not claims or not claims.get("doctorId"):
            return result(401, "Invalid or expired verification token")

        doctor = await self._repository.set_verified(claims["doctorId"])
        if not doctor:
            return result(404, "Doctor not found")

        return result(200, "Email verified successfully")

    async def forgot_password(self, email: Optional[str]) -> ServiceResult:
        """Start a password reset.

        The response is identical whether or not the account exists so the
        endpoint cannot be used to enumerate registered emails.
        """
        if not email:
            return result(400, "Email address is required")

        notifications: List[NotificationOutcome] = []
        doctor = await self._repository.find_by_email(email.strip().lower())
        if doctor and doctor.is_verified:
            token = self._tokens.issue({"email": doctor.email}, PURPOSE_RESET)
            notifications.append(
                await self._notify(
                    "forgotPasswordMail",
                    doctor.email,
                    {"Name": doctor.display_name, "Link": self._link("reset-password", token)},
                )
            )

        return ServiceResult(status=200, message=GENERIC_RESET_MESSAGE, notifications=notifications)

    async def reset_password(self, token: Optional[str], new_password: Optional[str]) -> ServiceResult:
        if not new_password:
            return result(400, "New password is required")

        claims = self._tokens.decode(token, PURPOSE_RESET)
        if not claims or not claims.get("email"):
            return result(401, "Invalid or expired token")

        doctor = await self._repository.find_by_email(claims["email"])
        if not doctor:
            return result(404, "Doctor not found")

        salt = generate_salt()
        updated = await self._repository.update_password(
            doctor.doctor_id, self._hash(new_password, salt), salt
        )
        if not updated:
            return result(404, "Doctor not found")

        return result(200, "Password reset successful")

    async def change_password(
        self,
        identity: DoctorIdentity,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> ServiceResult:
        if not current_password or not new_password:
            return result(400, "Current password and new password are required")

        doctor = await self._repository.find_by_id(identity.doctor_id)
        if not doctor:
            return result(404, "Doctor not found")

        if not self._check_password(doctor, current_password):
            return result(400, "Current password is incorrect")

        salt = generate_salt()
        updated = await self._repository.update_password(
            doctor.doctor_id, self._hash(new_password, salt), salt
        )
        if not updated:
            return result(404, "Doctor not found")

        return result(200, "Password changed successfully")

    # ------------------------------------------------------------------
    # profile
    # ------------------------------------------------------------------

    async def get_auth_info(self, identity: DoctorIdentity) -> ServiceResult:
        doctor = await self._repository.find_by_email(identity.email)
        if not doctor:
            return result(404, "Doctor not found")

        return result(
            200,
            "Doctor is authenticated",
            doctorId=doctor.doctor_id,
            firstName=doctor.first_name,
            middleName=doctor.middle_name,
            lastName=doctor.last_name,
            email=doctor.email,
            profileImageUrl=doctor.profile_image_url,
            specialization=list(doctor.specialization),
            experience=doctor.experience,
            isVerified=doctor.is_verified,
        )

    async def get_profile(self, doctor_id: str) -> ServiceResult:
        doctor = await self._repository.find_by_id(doctor_id)
        if not doctor:
            return result(404, "Doctor not found")
        return result(200, "Doctor profile retrieved successfully", doctor=doctor_to_dict(doctor))

    async def update_profile(self, doctor_id: str, fields: Dict[str, Any]) -> ServiceResult:
        """Apply a partial profile update.

        Credentials, verification state, identifiers and embedded collections
        are silently dropped; they have dedicated operations.
        """
        update = {k: v for k, v in (fields or {}).items() if k in PROFILE_FIELDS}

        for key in ("languages", "specialization"):
            if key in update:
                cleaned = _clean_list(update[key])
                if not cleaned:
                    return result(400, f"At least one {'language' if key == 'languages' else 'specialization'} is required")
                update[key] = cleaned

        for key in ("first_name", "last_name"):
            if key in update and not (update[key] or "").strip():
                return result(400, f"Invalid doctor data. Field: {key}")

        if "experience" in update:
            experience = update["experience"]
            if isinstance(experience, bool) or not isinstance(experience, int) or experience < 0:
                return result(400, "Experience must be a non-negative whole number of years")

        if update.get("gender") is not None and update["gender"] not in ("male", "female", "other"):
            return result(400, "Gender must be one of: male, female, other")

        if "dob" in update and update["dob"] is not None:
            update["dob"] = _coerce_date(update["dob"])

        doctor = await self._repository.update_fields(doctor_id, update)
        if not doctor:
            return result(404, "Doctor not found")

        return result(200, "Profile updated successfully", doctor=doctor_to_dict(doctor))

    # ------------------------------------------------------------------
    # availability
    # ------------------------------------------------------------------

    async def add_availability(self, doctor_id: str, slots: Optional[List[TimeSlotData]]) -> ServiceResult:
        if not slots:
            return result(400, "Valid time slots are required")

        if not all(slot.is_complete() for slot in slots):
            return result(400, "Each time slot must include day, timeSlot, and consultationFee")

        new_slots = [TimeSlot(s.day, s.time_slot, s.consultation_fee) for s in slots]
        updated = await self._repository.add_time_slots(doctor_id, new_slots)
        if updated is None:
            return result(404, "Doctor not found")

        return result(
            200,
            "Availability updated successfully",
            availableTimeSlots=[time_slot_to_dict(s) for s in updated],
        )

    async def update_time_slot(self, doctor_id: str, slot_id: str, slot: TimeSlotData) -> ServiceResult:
        if not slot.is_complete():
            return result(400, "Time slot must include day, timeSlot, and consultationFee")

        replacement = TimeSlot(slot.day, slot.time_slot, slot.consultation_fee, slot_id=slot_id)
        updated = await self._repository.replace_time_slot(doctor_id, slot_id, replacement)
        if updated is None:
            return result(404, "Doctor or time slot not found")

        return result(
            200,
            "Time slot updated successfully",
            availableTimeSlots=[time_slot_to_dict(s) for s in updated],
        )

    async def remove_time_slot(self, doctor_id: str, slot_id: str) -> ServiceResult:
        updated = await self._repository.remove_time_slot(doctor_id, slot_id)
        if updated is None:
            return result(404, "Doctor or time slot not found")

        return result(
            200,
            "Time slot removed successfully",
            availableTimeSlots=[time_slot_to_dict(s) for s in updated],
        )

    # ------------------------------------------------------------------
    # sessions
    # ------------------------------------------------------------------

    async def book_session(self, doctor_id: str, request: BookSessionRequest) -> ServiceResult:
        if not (
            request.patient_id
            and request.type
            and request.date
            and request.time_slot
            and request.duration
        ):
            return result(400, "Missing required session information")

        session_type = SessionType.parse(request.type)
        if session_type is None:
            return result(400, "Session type must be 'Online' or 'In-person'")

        session_date = _coerce_date(request.date)
        if session_date is None:
            return result(400, "Invalid session date")

        try:
            session = Session(
                patient_id=request.patient_id,
                type=session_type,
                date=session_date,
                time_slot=request.time_slot,
                duration=int(request.duration),
                notes=request.notes,
            )
        except (DomainError, ValueError, TypeError) as e:
            return result(400, getattr(e, "message", str(e)))

        created = await self._repository.add_session(doctor_id, session)
        if not created:
            return result(404, "Doctor not found")

        logger.info(f"Booked session {created.session_id} for doctor {doctor_id}")
        return ServiceResult(
            status=201,
            message="Session booked successfully",
            payload={"session": session_to_dict(created)},
            notifications=[self._patient_notice("sessionBookedMail", created)],
        )

    async def update_session(self, doctor_id: str, session_id: str, fields: Dict[str, Any]) -> ServiceResult:
        """Update mutable session details. ``session_id`` and ``status`` are ignored."""
        update = {k: v for k, v in (fields or {}).items() if k in SESSION_UPDATE_FIELDS and v is not None}

        if "type" in update:
            session_type = SessionType.parse(update["type"])
            if session_type is None:
                return result(400, "Session type must be 'Online' or 'In-person'")
            update["type"] = session_type

        if "date" in update:
            update["date"] = _coerce_date(update["date"])
            if update["date"] is None:
                return result(400, "Invalid session date")

        if "duration" in update:
            try:
                update["duration"] = int(update["duration"])
            except (TypeError, ValueError):
                return result(400, "Duration must be a positive number of minutes")
            if update["duration"] <= 0:
                return result(400, "Duration must be a positive number of minutes")

        if "time_slot" in update and not str(update["time_slot"]).strip():
            return result(400, "Time slot cannot be empty")

        session = await self._repository.update_session(doctor_id, session_id, update)
        if not session:
            return result(404, "Session not found")

        return result(200, "Session updated successfully", session=session_to_dict(session))

    async def cancel_session(self, doctor_id: str, session_id: str) -> ServiceResult:
        # No transition guard: cancelling an already cancelled session succeeds again.
        session = await self._repository.set_session_status(doctor_id, session_id, SessionStatus.CANCELLED)
        if not session:
            return result(404, "Session not found")

        return ServiceResult(
            status=200,
            message="Session cancelled successfully",
            payload={"session": session_to_dict(session)},
            notifications=[self._patient_notice("sessionCancelledMail", session)],
        )

    async def complete_session(
        self, doctor_id: str, session_id: str, notes: Optional[str] = None
    ) -> ServiceResult:
        session = await self._repository.set_session_status(
            doctor_id, session_id, SessionStatus.COMPLETED, notes=notes
        )
        if not session:
            return result(404, "Session not found")

        return result(200, "Session completed successfully", session=session_to_dict(session))

    async def list_sessions(self, doctor_id: str, status: Optional[str] = None) -> ServiceResult:
        status_filter = None
        if status:
            try:
                status_filter = SessionStatus(status.strip().lower())
            except ValueError:
                return result(400, "Status must be one of: scheduled, completed, cancelled")

        sessions = await self._repository.list_sessions(doctor_id, status_filter)
        if sessions is None:
            return result(404, "Doctor not found")

        return result(
            200,
            "Sessions retrieved successfully",
            sessions=[session_to_dict(s) for s in sessions],
        )

    async def get_session(self, doctor_id: str, session_id: str) -> ServiceResult:
        session = await self._repository.find_session(doctor_id, session_id)
        if not session:
            return result(404, "Session not found")
        return result(200, "Session retrieved successfully", session=session_to_dict(session))

    async def get_patient_sessions(self, doctor_id: str, patient_id: str) -> ServiceResult:
        sessions = await self._repository.list_sessions_for_patient(doctor_id, patient_id)
        if sessions is None:
            return result(404, "Doctor not found")

        return result(
            200,
            "Patient sessions retrieved successfully",
            sessions=[session_to_dict(s) for s in sessions],
        )

    # ------------------------------------------------------------------
    # professional records
    # ------------------------------------------------------------------

    async def add_degree(self, doctor_id: str, data: DegreeData) -> ServiceResult:
        if not (data.degree_name or "").strip():
            return result(400, "Degree name is required")

        degrees = await self._repository.add_degree(doctor_id, self._build_degree(data))
        if degrees is None:
            return result(404, "Doctor not found")

        return result(200, "Degree added successfully", degrees=[degree_to_dict(d) for d in degrees])

    async def replace_degree(self, doctor_id: str, degree_id: str, data: DegreeData) -> ServiceResult:
        if not (data.degree_name or "").strip():
            return result(400, "Degree name is required")

        degrees = await self._repository.replace_degree(
            doctor_id, degree_id, self._build_degree(data, degree_id)
        )
        if degrees is None:
            return result(404, "Doctor or degree not found")

        return result(200, "Degree updated successfully", degrees=[degree_to_dict(d) for d in degrees])

    async def remove_degree(self, doctor_id: str, degree_id: str) -> ServiceResult:
        degrees = await self._repository.remove_degree(doctor_id, degree_id)
        if degrees is None:
            return result(404, "Doctor or degree not found")

        return result(200, "Degree removed successfully", degrees=[degree_to_dict(d) for d in degrees])

    @staticmethod
    def _build_degree(data: DegreeData, degree_id: Optional[str] = None) -> Degree:
        degree = Degree(
            degree_name=data.degree_name.strip(),
            institution=data.institution,
            year_of_completion=data.year_of_completion,
            verified_proof=data.verified_proof,
        )
        if degree_id:
            degree.degree_id = degree_id
        return degree

    async def add_hospital_affiliation(self, doctor_id: str, data: AffiliationData) -> ServiceResult:
        if not (data.name or "").strip():
            return result(400, "Hospital name is required")

        affiliations = await self._repository.add_affiliation(
            doctor_id, HospitalAffiliation(name=data.name.strip(), location=data.location)
        )
        if affiliations is None:
            return result(404, "Doctor not found")

        return result(
            200,
            "Hospital affiliation added successfully",
            hospitalAffiliations=[affiliation_to_dict(a) for a in affiliations],
        )

    async def replace_hospital_affiliation(
        self, doctor_id: str, affiliation_id: str, data: AffiliationData
    ) -> ServiceResult:
        if not (data.name or "").strip():
            return result(400, "Hospital name is required")

        replacement = HospitalAffiliation(
            name=data.name.strip(), location=data.location, affiliation_id=affiliation_id
        )
        affiliations = await self._repository.replace_affiliation(doctor_id, affiliation_id, replacement)
        if affiliations is None:
            return result(404, "Doctor or hospital affiliation not found")

        return result(
            200,
            "Hospital affiliation updated successfully",
            hospitalAffiliations=[affiliation_to_dict(a) for a in affiliations],
        )

    async def remove_hospital_affiliation(self, doctor_id: str, affiliation_id: str) -> ServiceResult:
        affiliations = await self._repository.remove_affiliation(doctor_id, affiliation_id)
        if affiliations is None:
            return result(404, "Doctor or hospital affiliation not found")

        return result(
            200,
            "Hospital affiliation removed successfully",
            hospitalAffiliations=[affiliation_to_dict(a) for a in affiliations],
        )

    async def update_specializations(self, doctor_id: str, specializations: Optional[List[str]]) -> ServiceResult:
        cleaned = _clean_list(specializations)
        if not cleaned:
            return result(400, "At least one specialization is required")

        updated = await self._repository.replace_specializations(doctor_id, cleaned)
        if updated is None:
            return result(404, "Doctor not found")

        return result(200, "Specializations updated successfully", specialization=updated)

    async def update_languages(self, doctor_id: str, languages: Optional[List[str]]) -> ServiceResult:
        cleaned = _clean_list(languages)
        if not cleaned:
            return result(400, "At least one language is required")

        updated = await self._repository.replace_languages(doctor_id, cleaned)
        if updated is None:
            return result(404, "Doctor not found")

        return result(200, "Languages updated successfully", languages=updated)

    # ------------------------------------------------------------------
    # directory
    # ------------------------------------------------------------------

    async def search_doctors(self, criteria: DoctorSearchCriteria) -> ServiceResult:
        page = await self._repository.search(criteria)
        return result(
            200,
            "Search results retrieved successfully",
            results={
                "doctors": [doctor_to_dict(d, include_sessions=False) for d in page.items],
                "pagination": page.pagination(),
            },
        )

    async def list_doctors(self, query: DoctorListQuery) -> ServiceResult:
        """Public directory listing with whitelisted filters and sort fields."""
        filters = {
            LISTING_FILTERS[key]: value
            for key, value in (query.filters or {}).items()
            if key in LISTING_FILTERS and value is not None and value != ""
        }

        sort = DEFAULT_LISTING_SORT
        if query.sort:
            descending = query.sort.startswith("-")
            field_name = LISTING_SORT_FIELDS.get(query.sort.lstrip("-"))
            if field_name:
                sort = f"-{field_name}" if descending else field_name

        page = await self._repository.list_doctors(
            DoctorListQuery(filters=filters, page=query.page, limit=query.limit, sort=sort)
        )
        return result(
            200,
            "Doctors retrieved successfully",
            doctors={
                "doctors": [doctor_to_dict(d, include_sessions=False) for d in page.items],
                "pagination": page.pagination(),
            },
        )

    # ------------------------------------------------------------------
    # account
    # ------------------------------------------------------------------

    async def delete_account(self, doctor_id: str) -> ServiceResult:
        deleted = await self._repository.delete(doctor_id)
        if not deleted:
            return result(404, "Doctor not found")

        logger.info(f"Deleted doctor account {doctor_id}")
        return result(200, "Doctor account deleted successfully")
