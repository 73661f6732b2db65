"""
Doctor endpoints: account, profile, availability, sessions and records.

Each handler hands its inputs to ``DoctorService`` and returns the service
envelope as-is: ``status`` becomes the HTTP status and ``{message, ...}``
the body. Protected routes receive the caller's identity from the
authentication middleware.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Query

from ...application.dto.doctor_dto import (
    AffiliationData,
    BookSessionRequest,
    DegreeData,
    DoctorListQuery,
    DoctorSearchCriteria,
    RegisterDoctorRequest,
    TimeSlotData,
)
from ..deps import CurrentDoctorDep, DoctorServiceDep
from ..schemas.common import MessageResponse
from ..schemas.doctor import (
    AffiliationBody,
    BookSessionBody,
    ChangePasswordBody,
    CompleteSessionBody,
    DegreeBody,
    ForgotPasswordBody,
    LoginBody,
    ProfileUpdateBody,
    RegisterDoctorBody,
    ResetPasswordBody,
    SearchBody,
    SessionUpdateBody,
    TimeSlotBody,
)
from ..utils.responses import envelope

router = APIRouter(prefix="/doctor", tags=["doctor"])
directory_router = APIRouter(tags=["doctor"])


# ------------------------------------------------------------------------
# Account
# ------------------------------------------------------------------------


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(payload: RegisterDoctorBody, service: DoctorServiceDep):
    """Register a new (unverified) doctor and send the verification mail."""
    result = await service.register(RegisterDoctorRequest(**payload.model_dump()))
    return envelope(result)


@router.post("/login", response_model=MessageResponse)
async def login(payload: LoginBody, service: DoctorServiceDep):
    return envelope(await service.login(payload.email, payload.password))


@router.get("/verify/{token}", response_model=MessageResponse)
async def verify_email(token: str, service: DoctorServiceDep):
    return envelope(await service.verify_email(token))


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordBody, service: DoctorServiceDep):
    return envelope(await service.forgot_password(payload.email))


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(token: str, payload: ResetPasswordBody, service: DoctorServiceDep):
    return envelope(await service.reset_password(token, payload.new_password))


@router.get("/me", response_model=MessageResponse)
async def me(identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.get_auth_info(identity))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    return envelope(
        await service.change_password(identity, payload.current_password, payload.new_password)
    )


@router.delete("/account", response_model=MessageResponse)
async def delete_account(identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.delete_account(identity.doctor_id))


# ------------------------------------------------------------------------
# Profile
# ------------------------------------------------------------------------


@router.get("/profile", response_model=MessageResponse)
async def get_profile(identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.get_profile(identity.doctor_id))


@router.post("/profile", response_model=MessageResponse)
async def update_profile(
    payload: ProfileUpdateBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    """Partial update; only the fields present in the body are changed."""
    fields = payload.model_dump(exclude_unset=True)
    return envelope(await service.update_profile(identity.doctor_id, fields))


# ------------------------------------------------------------------------
# Availability
# ------------------------------------------------------------------------


@router.post("/availability", response_model=MessageResponse)
async def add_availability(
    identity: CurrentDoctorDep,
    service: DoctorServiceDep,
    slots: List[TimeSlotBody] = Body(...),
):
    """Append one or more weekly slots (body is a JSON array)."""
    data = [TimeSlotData(**slot.model_dump()) for slot in slots]
    return envelope(await service.add_availability(identity.doctor_id, data))


@router.put("/availability/{slot_id}", response_model=MessageResponse)
async def update_time_slot(
    slot_id: str, payload: TimeSlotBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    return envelope(
        await service.update_time_slot(identity.doctor_id, slot_id, TimeSlotData(**payload.model_dump()))
    )


@router.delete("/availability/{slot_id}", response_model=MessageResponse)
async def remove_time_slot(slot_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.remove_time_slot(identity.doctor_id, slot_id))


# ------------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------------


@router.post("/sessions", response_model=MessageResponse, status_code=201)
async def book_session(payload: BookSessionBody, identity: CurrentDoctorDep, service: DoctorServiceDep):
    result = await service.book_session(identity.doctor_id, BookSessionRequest(**payload.model_dump()))
    return envelope(result)


@router.get("/sessions", response_model=MessageResponse)
async def list_sessions(
    identity: CurrentDoctorDep,
    service: DoctorServiceDep,
    status: Optional[str] = Query(None, description="scheduled, completed or cancelled"),
):
    return envelope(await service.list_sessions(identity.doctor_id, status))


@router.get("/sessions/{session_id}", response_model=MessageResponse)
async def get_session(session_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.get_session(identity.doctor_id, session_id))


@router.get("/patient-sessions/{patient_id}", response_model=MessageResponse)
async def get_patient_sessions(patient_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.get_patient_sessions(identity.doctor_id, patient_id))


@router.put("/sessions/{session_id}", response_model=MessageResponse)
async def update_session(
    session_id: str, payload: SessionUpdateBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    fields = payload.model_dump(exclude_unset=True)
    return envelope(await service.update_session(identity.doctor_id, session_id, fields))


@router.put("/sessions/{session_id}/cancel", response_model=MessageResponse)
async def cancel_session(session_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.cancel_session(identity.doctor_id, session_id))


@router.put("/sessions/{session_id}/complete", response_model=MessageResponse)
async def complete_session(
    session_id: str,
    identity: CurrentDoctorDep,
    service: DoctorServiceDep,
    payload: Optional[CompleteSessionBody] = None,
):
    notes = payload.notes if payload else None
    return envelope(await service.complete_session(identity.doctor_id, session_id, notes))


# ------------------------------------------------------------------------
# Professional records
# ------------------------------------------------------------------------


@router.post("/degrees", response_model=MessageResponse)
async def add_degree(payload: DegreeBody, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.add_degree(identity.doctor_id, DegreeData(**payload.model_dump())))


@router.put("/degrees/{degree_id}", response_model=MessageResponse)
async def replace_degree(
    degree_id: str, payload: DegreeBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    return envelope(
        await service.replace_degree(identity.doctor_id, degree_id, DegreeData(**payload.model_dump()))
    )


@router.delete("/degrees/{degree_id}", response_model=MessageResponse)
async def remove_degree(degree_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep):
    return envelope(await service.remove_degree(identity.doctor_id, degree_id))


@router.post("/hospital-affiliations", response_model=MessageResponse)
async def add_hospital_affiliation(
    payload: AffiliationBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    data = AffiliationData(**payload.model_dump())
    return envelope(await service.add_hospital_affiliation(identity.doctor_id, data))


@router.put("/hospital-affiliations/{affiliation_id}", response_model=MessageResponse)
async def replace_hospital_affiliation(
    affiliation_id: str, payload: AffiliationBody, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    data = AffiliationData(**payload.model_dump())
    return envelope(
        await service.replace_hospital_affiliation(identity.doctor_id, affiliation_id, data)
    )


@router.delete("/hospital-affiliations/{affiliation_id}", response_model=MessageResponse)
async def remove_hospital_affiliation(
    affiliation_id: str, identity: CurrentDoctorDep, service: DoctorServiceDep
):
    return envelope(await service.remove_hospital_affiliation(identity.doctor_id, affiliation_id))


@router.put("/specializations", response_model=MessageResponse)
async def update_specializations(
    identity: CurrentDoctorDep,
    service: DoctorServiceDep,
    specializations: List[str] = Body(...),
):
    return envelope(await service.update_specializations(identity.doctor_id, specializations))


@router.put("/languages", response_model=MessageResponse)
async def update_languages(
    identity: CurrentDoctorDep,
    service: DoctorServiceDep,
    languages: List[str] = Body(...),
):
    return envelope(await service.update_languages(identity.doctor_id, languages))


# ------------------------------------------------------------------------
# Public directory
# ------------------------------------------------------------------------


@router.post("/search", response_model=MessageResponse)
async def search_doctors(payload: SearchBody, service: DoctorServiceDep):
    return envelope(await service.search_doctors(DoctorSearchCriteria(**payload.model_dump())))


@directory_router.get("/doctors", response_model=MessageResponse)
async def list_doctors(
    service: DoctorServiceDep,
    specialization: Optional[str] = None,
    languages: Optional[str] = None,
    location: Optional[str] = None,
    gender: Optional[str] = None,
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Optional[str] = Query(None, description="field or -field, e.g. -experience"),
):
    query = DoctorListQuery(
        filters={
            "specialization": specialization,
            "languages": languages,
            "location": location,
            "gender": gender,
            "isVerified": is_verified,
        },
        page=page,
        limit=limit,
        sort=sort,
    )
    return envelope(await service.list_doctors(query))
