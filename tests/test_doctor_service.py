"""
DoctorService behaviour against the in-memory store.
"""

from datetime import datetime

import pytest

from conftest import token_from_link
from medconnect.application.dto.doctor_dto import (
    AffiliationData,
    BookSessionRequest,
    DegreeData,
    DoctorListQuery,
    DoctorSearchCriteria,
    RegisterDoctorRequest,
    TimeSlotData,
)
from medconnect.application.services.doctor_service import GENERIC_RESET_MESSAGE
from medconnect.core.utils.crypto import PURPOSE_ACCESS, PURPOSE_VERIFY, get_token_service
from medconnect.domain.value_objects.identity import DoctorIdentity


def registration(email="a@b.com", **overrides):
    data = dict(
        email=email,
        password="s3cret-pass",
        first_name="Ada",
        last_name="Lovelace",
        specialization=["Cardiology"],
        languages=["English"],
    )
    data.update(overrides)
    return RegisterDoctorRequest(**data)


async def register_verified(service, notifier, email="a@b.com", **overrides):
    created = await service.register(registration(email, **overrides))
    assert created.status == 201
    token = token_from_link(notifier.last_link("verificationLinkMail"))
    assert (await service.verify_email(token)).status == 200
    return created.payload["doctorId"]


def booking(**overrides):
    data = dict(
        patient_id="patient-1",
        type="Online",
        date=datetime(2025, 6, 1),
        time_slot="10:00-10:30",
        duration=30,
    )
    data.update(overrides)
    return BookSessionRequest(**data)


# ---------------------------------------------------------------------------
# Registration and authentication
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_register_sends_welcome_and_verification(service, notifier, repository):
    result = await service.register(registration(email="  A@B.com "))

    assert result.status == 201
    assert result.payload["verificationEmailSent"] is True
    assert notifier.templates() == ["welcomeMail", "verificationLinkMail"]
    assert all(n.delivered for n in result.notifications)

    stored = await repository.find_by_id(result.payload["doctorId"])
    assert stored.email == "a@b.com"
    assert stored.is_verified is False
    assert stored.password != "s3cret-pass"
    assert stored.salt


@pytest.mark.asyncio
async def test_register_rejects_duplicate_email(service):
    assert (await service.register(registration())).status == 201
    duplicate = await service.register(registration(email="A@b.com"))
    assert duplicate.status == 400
    assert duplicate.message == "Doctor already registered with this email."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"password": None}, "Please provide all required information."),
        ({"last_name": ""}, "Please provide all required information."),
        ({"specialization": []}, "Please provide at least one specialization."),
        ({"specialization": ["  "]}, "Please provide at least one specialization."),
        ({"languages": []}, "Please provide at least one language."),
    ],
)
async def test_register_requires_fields(service, notifier, overrides, message):
    result = await service.register(registration(**overrides))
    assert result.status == 400
    assert result.message == message
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_register_rejects_invalid_email(service):
    result = await service.register(registration(email="not-an-email"))
    assert result.status == 400


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_registration(service, notifier, repository):
    notifier.fail = True

    result = await service.register(registration())

    assert result.status == 201
    assert result.payload["verificationEmailSent"] is False
    assert [n.delivered for n in result.notifications] == [False, False]
    assert await repository.find_by_email("a@b.com") is not None


@pytest.mark.asyncio
async def test_login_requires_verification(service, notifier):
    await service.register(registration())

    before = await service.login("a@b.com", "s3cret-pass")
    assert before.status == 401

    token = token_from_link(notifier.last_link("verificationLinkMail"))
    assert (await service.verify_email(token)).status == 200

    after = await service.login("A@B.com", "s3cret-pass")
    assert after.status == 200
    claims = get_token_service().decode(after.payload["token"], PURPOSE_ACCESS)
    assert claims["email"] == "a@b.com"


@pytest.mark.asyncio
async def test_login_failures(service, notifier):
    await register_verified(service, notifier)

    assert (await service.login("a@b.com", "wrong")).status == 400
    assert (await service.login("nobody@b.com", "s3cret-pass")).status == 404
    assert (await service.login("a@b.com", None)).status == 400


@pytest.mark.asyncio
async def test_verify_email_is_idempotent(service, notifier):
    await service.register(registration())
    token = token_from_link(notifier.last_link("verificationLinkMail"))

    assert (await service.verify_email(token)).status == 200
    assert (await service.verify_email(token)).status == 200


@pytest.mark.asyncio
async def test_verify_email_rejects_bad_tokens(service, repository):
    assert (await service.verify_email(None)).status == 401
    assert (await service.verify_email("garbage")).status == 401

    access = get_token_service().issue({"doctorId": "x", "email": "a@b.com"}, PURPOSE_ACCESS)
    assert (await service.verify_email(access)).status == 401

    orphan = get_token_service().issue({"doctorId": "missing", "email": "z@b.com"}, PURPOSE_VERIFY)
    assert (await service.verify_email(orphan)).status == 404


@pytest.mark.asyncio
async def test_forgot_password_response_is_uniform(service, notifier):
    await service.register(registration(email="unverified@b.com"))
    await register_verified(service, notifier, email="verified@b.com")
    sent_before = len(notifier.sent)

    unknown = await service.forgot_password("ghost@b.com")
    unverified = await service.forgot_password("unverified@b.com")
    assert unknown.status == unverified.status == 200
    assert unknown.message == unverified.message == GENERIC_RESET_MESSAGE
    assert len(notifier.sent) == sent_before

    verified = await service.forgot_password("verified@b.com")
    assert verified.status == 200
    assert verified.message == GENERIC_RESET_MESSAGE
    assert notifier.templates()[-1] == "forgotPasswordMail"

    assert (await service.forgot_password("")).status == 400


@pytest.mark.asyncio
async def test_reset_password_flow(service, notifier):
    await register_verified(service, notifier)
    await service.forgot_password("a@b.com")
    token = token_from_link(notifier.last_link("forgotPasswordMail"))

    assert (await service.reset_password(token, None)).status == 400
    assert (await service.reset_password("bogus", "n3w-pass")).status == 401

    verify_token = token_from_link(notifier.last_link("verificationLinkMail"))
    assert (await service.reset_password(verify_token, "n3w-pass")).status == 401

    assert (await service.reset_password(token, "n3w-pass")).status == 200
    assert (await service.login("a@b.com", "s3cret-pass")).status == 400
    assert (await service.login("a@b.com", "n3w-pass")).status == 200


@pytest.mark.asyncio
async def test_change_password(service, notifier):
    doctor_id = await register_verified(service, notifier)
    identity = DoctorIdentity(doctor_id, "a@b.com")

    assert (await service.change_password(identity, "wrong", "n3w-pass")).status == 400
    assert (await service.change_password(identity, "s3cret-pass", "")).status == 400
    assert (await service.change_password(identity, "s3cret-pass", "n3w-pass")).status == 200
    assert (await service.login("a@b.com", "n3w-pass")).status == 200

    ghost = DoctorIdentity("missing", "ghost@b.com")
    assert (await service.change_password(ghost, "a", "b")).status == 404


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_auth_info_and_profile(service, notifier):
    doctor_id = await register_verified(service, notifier, experience=7)

    info = await service.get_auth_info(DoctorIdentity(doctor_id, "a@b.com"))
    assert info.status == 200
    assert info.payload["doctorId"] == doctor_id
    assert info.payload["isVerified"] is True
    assert info.payload["experience"] == 7

    profile = await service.get_profile(doctor_id)
    doctor = profile.payload["doctor"]
    assert doctor["email"] == "a@b.com"
    assert "password" not in doctor
    assert "salt" not in doctor
    assert doctor["sessions"] == []

    assert (await service.get_profile("missing")).status == 404


@pytest.mark.asyncio
async def test_update_profile_ignores_protected_fields(service, notifier, repository):
    doctor_id = await register_verified(service, notifier)
    before = await repository.find_by_id(doctor_id)

    result = await service.update_profile(
        doctor_id,
        {"location": "Boston", "password": "hijack", "is_verified": False, "doctor_id": "other"},
    )

    assert result.status == 200
    stored = await repository.find_by_id(doctor_id)
    assert stored.location == "Boston"
    assert stored.password == before.password
    assert stored.is_verified is True
    assert stored.doctor_id == doctor_id


@pytest.mark.asyncio
async def test_update_profile_validation(service, notifier):
    doctor_id = await register_verified(service, notifier)

    assert (await service.update_profile(doctor_id, {"languages": []})).status == 400
    assert (await service.update_profile(doctor_id, {"specialization": [" "]})).status == 400
    assert (await service.update_profile(doctor_id, {"first_name": "  "})).status == 400
    assert (await service.update_profile(doctor_id, {"gender": "robot"})).status == 400
    assert (await service.update_profile("missing", {"location": "x"})).status == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fields",
    [
        {"experience": None},
        {"experience": -1},
        {"experience": "ten"},
        {"languages": None},
        {"specialization": None},
        {"first_name": None},
        {"last_name": None},
    ],
)
async def test_update_profile_rejects_null_required_fields(service, notifier, repository, fields):
    doctor_id = await register_verified(service, notifier, experience=7)

    assert (await service.update_profile(doctor_id, fields)).status == 400

    stored = await repository.find_by_id(doctor_id)
    assert stored.experience == 7
    assert stored.languages and stored.specialization


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_time_slot_round_trip(service, notifier):
    doctor_id = await register_verified(service, notifier)

    added = await service.add_availability(
        doctor_id,
        [TimeSlotData("Monday", "09:00-12:00", 50), TimeSlotData("Tuesday", "14:00-17:00", 60)],
    )
    assert added.status == 200
    slots = added.payload["availableTimeSlots"]
    assert [s["day"] for s in slots] == ["Monday", "Tuesday"]
    slot_id = slots[0]["slotId"]

    updated = await service.update_time_slot(doctor_id, slot_id, TimeSlotData("Wednesday", "09:00-11:00", 55))
    assert updated.status == 200
    first = updated.payload["availableTimeSlots"][0]
    assert first == {"slotId": slot_id, "day": "Wednesday", "timeSlot": "09:00-11:00", "consultationFee": 55}

    removed = await service.remove_time_slot(doctor_id, slot_id)
    assert removed.status == 200
    assert [s["day"] for s in removed.payload["availableTimeSlots"]] == ["Tuesday"]

    assert (await service.remove_time_slot(doctor_id, slot_id)).status == 404
    assert (await service.update_time_slot(doctor_id, slot_id, TimeSlotData("Friday", "1-2", 5))).status == 404


@pytest.mark.asyncio
async def test_add_availability_validation(service, notifier):
    doctor_id = await register_verified(service, notifier)

    assert (await service.add_availability(doctor_id, [])).status == 400
    assert (await service.add_availability(doctor_id, [TimeSlotData("Monday", "09:00-10:00")])).status == 400
    assert (await service.add_availability("missing", [TimeSlotData("Monday", "9-10", 0)])).status == 404


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_book_cancel_scenario(service, notifier):
    doctor_id = await register_verified(service, notifier)

    booked = await service.book_session(doctor_id, booking())
    assert booked.status == 201
    session = booked.payload["session"]
    assert session["status"] == "scheduled"
    assert session["type"] == "Online"
    assert session["sessionLink"]
    assert booked.notifications[0].template == "sessionBookedMail"
    assert booked.notifications[0].delivered is False

    cancelled = await service.cancel_session(doctor_id, session["sessionId"])
    assert cancelled.status == 200
    assert cancelled.payload["session"]["status"] == "cancelled"

    again = await service.cancel_session(doctor_id, session["sessionId"])
    assert again.status == 200
    assert again.payload["session"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_register_book_and_cancel_twice(service, notifier, repository):
    created = await service.register(
        RegisterDoctorRequest(
            email="a@b.com",
            password="secret1",
            first_name="A",
            last_name="B",
            specialization=["Cardiologist"],
            languages=["English"],
        )
    )
    assert created.status == 201
    assert len(notifier.sent) == 2
    doctor_id = created.payload["doctorId"]
    assert (await repository.find_by_id(doctor_id)).is_verified is False

    booked = await service.book_session(
        doctor_id,
        BookSessionRequest(
            patient_id="p1", type="Online", date="2025-06-01", time_slot="10:00-10:30", duration=30
        ),
    )
    assert booked.status == 201
    session_id = booked.payload["session"]["sessionId"]
    assert booked.payload["session"]["status"] == "scheduled"
    assert booked.payload["session"]["date"] == datetime(2025, 6, 1)

    first = await service.cancel_session(doctor_id, session_id)
    second = await service.cancel_session(doctor_id, session_id)
    assert (first.status, first.payload["session"]["status"]) == (200, "cancelled")
    assert (second.status, second.payload["session"]["status"]) == (200, "cancelled")


@pytest.mark.asyncio
async def test_complete_session_records_notes(service, notifier):
    doctor_id = await register_verified(service, notifier)
    session_id = (await service.book_session(doctor_id, booking())).payload["session"]["sessionId"]

    completed = await service.complete_session(doctor_id, session_id, notes="Follow up in two weeks")

    assert completed.status == 200
    assert completed.payload["session"]["status"] == "completed"
    assert completed.payload["session"]["notes"] == "Follow up in two weeks"


@pytest.mark.asyncio
async def test_session_operations_on_unknown_session(service, notifier):
    doctor_id = await register_verified(service, notifier)

    assert (await service.cancel_session(doctor_id, "nope")).status == 404
    assert (await service.complete_session(doctor_id, "nope")).status == 404
    assert (await service.update_session(doctor_id, "nope", {"notes": "x"})).status == 404
    assert (await service.get_session(doctor_id, "nope")).status == 404


@pytest.mark.asyncio
async def test_session_is_scoped_to_its_doctor(service, notifier):
    owner = await register_verified(service, notifier, email="owner@b.com")
    other = await register_verified(service, notifier, email="other@b.com")
    session_id = (await service.book_session(owner, booking())).payload["session"]["sessionId"]

    assert (await service.cancel_session(other, session_id)).status == 404
    assert (await service.get_session(owner, session_id)).status == 200


@pytest.mark.asyncio
async def test_book_session_validation(service, notifier):
    doctor_id = await register_verified(service, notifier)

    assert (await service.book_session(doctor_id, booking(patient_id=None))).status == 400
    assert (await service.book_session(doctor_id, booking(type="Carrier pigeon"))).status == 400
    assert (await service.book_session(doctor_id, booking(type="in-person"))).status == 201
    assert (await service.book_session("missing", booking())).status == 404


@pytest.mark.asyncio
async def test_update_session_never_changes_status(service, notifier):
    doctor_id = await register_verified(service, notifier)
    session_id = (await service.book_session(doctor_id, booking())).payload["session"]["sessionId"]

    updated = await service.update_session(
        doctor_id, session_id, {"duration": 45, "status": "completed", "session_id": "forged"}
    )

    assert updated.status == 200
    assert updated.payload["session"]["duration"] == 45
    assert updated.payload["session"]["status"] == "scheduled"
    assert updated.payload["session"]["sessionId"] == session_id

    assert (await service.update_session(doctor_id, session_id, {"duration": 0})).status == 400


@pytest.mark.asyncio
async def test_list_sessions_filters_by_status(service, notifier):
    doctor_id = await register_verified(service, notifier)
    first = (await service.book_session(doctor_id, booking())).payload["session"]["sessionId"]
    await service.book_session(doctor_id, booking(patient_id="patient-2"))
    await service.cancel_session(doctor_id, first)

    everything = await service.list_sessions(doctor_id)
    assert len(everything.payload["sessions"]) == 2

    cancelled = await service.list_sessions(doctor_id, "cancelled")
    assert [s["sessionId"] for s in cancelled.payload["sessions"]] == [first]

    assert (await service.list_sessions(doctor_id, "postponed")).status == 400
    assert (await service.list_sessions("missing")).status == 404

    mine = await service.get_patient_sessions(doctor_id, "patient-2")
    assert [s["patientId"] for s in mine.payload["sessions"]] == ["patient-2"]


# ---------------------------------------------------------------------------
# Professional records
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_degree_lifecycle(service, notifier):
    doctor_id = await register_verified(service, notifier)

    added = await service.add_degree(doctor_id, DegreeData("MBBS", "AIIMS", 2010))
    degree_id = added.payload["degrees"][0]["degreeId"]

    replaced = await service.replace_degree(doctor_id, degree_id, DegreeData("MD", "AIIMS", 2013))
    assert replaced.payload["degrees"] == [
        {
            "degreeId": degree_id,
            "degreeName": "MD",
            "institution": "AIIMS",
            "yearOfCompletion": 2013,
            "verifiedProof": None,
        }
    ]

    assert (await service.remove_degree(doctor_id, degree_id)).payload["degrees"] == []
    assert (await service.remove_degree(doctor_id, degree_id)).status == 404
    assert (await service.add_degree(doctor_id, DegreeData())).status == 400


@pytest.mark.asyncio
async def test_affiliation_lifecycle(service, notifier):
    doctor_id = await register_verified(service, notifier)

    added = await service.add_hospital_affiliation(doctor_id, AffiliationData("General", "Boston"))
    affiliation_id = added.payload["hospitalAffiliations"][0]["affiliationId"]

    replaced = await service.replace_hospital_affiliation(
        doctor_id, affiliation_id, AffiliationData("Mercy", "Chicago")
    )
    assert replaced.payload["hospitalAffiliations"][0]["name"] == "Mercy"

    assert (await service.replace_hospital_affiliation(doctor_id, "nope", AffiliationData("X"))).status == 404
    assert (await service.remove_hospital_affiliation(doctor_id, affiliation_id)).status == 200
    assert (await service.add_hospital_affiliation(doctor_id, AffiliationData(""))).status == 400


@pytest.mark.asyncio
async def test_specializations_and_languages_replace_whole_list(service, notifier):
    doctor_id = await register_verified(service, notifier)

    result = await service.update_specializations(doctor_id, ["Neurology", " Oncology "])
    assert result.payload["specialization"] == ["Neurology", "Oncology"]

    result = await service.update_languages(doctor_id, ["French"])
    assert result.payload["languages"] == ["French"]

    assert (await service.update_specializations(doctor_id, [])).status == 400
    assert (await service.update_languages(doctor_id, None)).status == 400
    assert (await service.update_languages("missing", ["German"])).status == 404


# ---------------------------------------------------------------------------
# Directory and account
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_search_sorted_by_experience(service):
    for index, years in enumerate([5, 10, 15]):
        await service.register(registration(email=f"d{index}@b.com", experience=years))

    found = await service.search_doctors(DoctorSearchCriteria(min_experience=8))

    doctors = found.payload["results"]["doctors"]
    assert [d["experience"] for d in doctors] == [15, 10]
    assert all("sessions" not in d and "password" not in d for d in doctors)
    assert found.payload["results"]["pagination"] == {"total": 2, "page": 1, "limit": 10, "pages": 1}


@pytest.mark.asyncio
async def test_list_doctors_whitelists_filters_and_sort(service):
    await service.register(registration(email="x@b.com", experience=3, specialization=["Dermatology"]))
    await service.register(registration(email="y@b.com", experience=9))

    listed = await service.list_doctors(
        DoctorListQuery(filters={"specialization": "Cardiology", "password": "x"}, sort="-experience")
    )
    assert [d["email"] for d in listed.payload["doctors"]["doctors"]] == ["y@b.com"]

    fallback = await service.list_doctors(DoctorListQuery(sort="salt"))
    assert fallback.status == 200
    assert fallback.payload["doctors"]["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_delete_account(service, notifier):
    doctor_id = await register_verified(service, notifier)

    assert (await service.delete_account(doctor_id)).status == 200
    assert (await service.delete_account(doctor_id)).status == 404
    assert (await service.login("a@b.com", "s3cret-pass")).status == 404
