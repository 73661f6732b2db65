"""FastAPI dependency providers."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from ..adapters.db.mongo.repositories.doctor_repository import MongoDoctorRepository
from ..adapters.notifications.email_service import create_notification_service
from ..application.ports.repositories.doctor_repo import DoctorRepository
from ..application.ports.services.notification_service import NotificationService
from ..application.services.doctor_service import DoctorService
from ..application.services.medicine_locator import MedicineLocator
from ..core.utils.crypto import get_token_service
from ..domain.value_objects.identity import DoctorIdentity


@lru_cache()
def get_doctor_repository() -> DoctorRepository:
    """Get doctor repository instance."""
    return MongoDoctorRepository()


@lru_cache()
def get_notification_service() -> NotificationService:
    """Get the mail backend selected by MAIL_BACKEND."""
    return create_notification_service()


def get_doctor_service(
    repository: Annotated[DoctorRepository, Depends(get_doctor_repository)],
    notifier: Annotated[NotificationService, Depends(get_notification_service)],
) -> DoctorService:
    return DoctorService(repository, notifier, token_service=get_token_service())


@lru_cache()
def get_medicine_locator() -> MedicineLocator:
    return MedicineLocator()


def get_current_doctor(request: Request) -> DoctorIdentity:
    """
    Identity of the authenticated doctor, set on ``request.state`` by the
    authentication middleware.
    """
    identity = getattr(request.state, "identity", None)
    if not identity:
        # This should not happen if authentication middleware is working
        raise HTTPException(status_code=401, detail="Doctor not authenticated")
    return identity


# Dependency annotations for FastAPI
DoctorServiceDep = Annotated[DoctorService, Depends(get_doctor_service)]
MedicineLocatorDep = Annotated[MedicineLocator, Depends(get_medicine_locator)]
CurrentDoctorDep = Annotated[DoctorIdentity, Depends(get_current_doctor)]
