"""
Public medicine locator endpoints.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...application.services.medicine_locator import InvalidLocatorQuery
from ..deps import MedicineLocatorDep

router = APIRouter(prefix="/medicines", tags=["medicines"])


@router.get("")
async def search_medicines(locator: MedicineLocatorDep, search: Optional[str] = None):
    """Medicines whose name contains ``search`` (case-insensitive)."""
    try:
        return locator.search(search)
    except InvalidLocatorQuery as e:
        return JSONResponse(status_code=400, content={"error": str(e)})


@router.get("/nearest-stores")
async def nearest_stores(
    locator: MedicineLocatorDep,
    medicine: Optional[str] = None,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
):
    """The three pharmacies closest to (lat, lng), with ``distance`` in km."""
    try:
        return locator.nearest_stores(medicine, lat, lng)
    except InvalidLocatorQuery as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
