"""
Medicine locator over a static catalogue.

Name search is a case-insensitive substring match; store lookup ranks every
pharmacy by great-circle distance from the caller and keeps the closest few.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from ...core.utils.geo import haversine_km

NEAREST_STORE_COUNT = 3


@dataclass(frozen=True)
class Medicine:
    id: int
    name: str
    description: str


@dataclass(frozen=True)
class Store:
    id: int
    name: str
    address: str
    lat: float
    lng: float


MEDICINES: Sequence[Medicine] = (
    Medicine(1, "Paracetamol", "Pain reliever and fever reducer"),
    Medicine(2, "Ibuprofen", "Nonsteroidal anti-inflammatory drug"),
    Medicine(3, "Aspirin", "Pain reliever, fever reducer, and blood thinner"),
    Medicine(4, "Amoxicillin", "Antibiotic to treat bacterial infections"),
    Medicine(5, "Loratadine", "Antihistamine for allergy relief"),
)

STORES: Sequence[Store] = (
    Store(1, "City Pharmacy", "123 Main St", 40.7128, -74.006),
    Store(2, "Health Hub", "456 Oak Ave", 40.7282, -73.9942),
    Store(3, "MediCare", "789 Pine Rd", 40.7589, -73.9851),
    Store(4, "QuickMeds", "321 Elm St", 40.7549, -73.984),
    Store(5, "Wellness Drugs", "654 Maple Ln", 40.7489, -73.968),
)


class InvalidLocatorQuery(ValueError):
    """Raised for a missing or malformed locator query."""


def _parse_coordinate(value: Optional[str]) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidLocatorQuery("Invalid query parameters")
    if math.isnan(number) or math.isinf(number):
        raise InvalidLocatorQuery("Invalid query parameters")
    return number


class MedicineLocator:
    """Search medicines and rank pharmacies by distance."""

    def __init__(
        self,
        medicines: Sequence[Medicine] = MEDICINES,
        stores: Sequence[Store] = STORES,
        limit: int = NEAREST_STORE_COUNT,
    ):
        self._medicines = medicines
        self._stores = stores
        self._limit = limit

    def search(self, query: Optional[str]) -> List[Dict[str, Any]]:
        if query is None:
            raise InvalidLocatorQuery("Invalid search query")

        needle = query.lower()
        return [asdict(m) for m in self._medicines if needle in m.name.lower()]

    def nearest_stores(
        self, medicine: Optional[str], lat: Optional[str], lng: Optional[str]
    ) -> List[Dict[str, Any]]:
        """Closest stores to (lat, lng), each annotated with ``distance`` in km.

        Stock is not modelled, so ``medicine`` is only required to be present.
        """
        if medicine is None or lat is None or lng is None:
            raise InvalidLocatorQuery("Invalid query parameters")

        user_lat = _parse_coordinate(lat)
        user_lng = _parse_coordinate(lng)

        ranked = [
            {**asdict(store), "distance": haversine_km(user_lat, user_lng, store.lat, store.lng)}
            for store in self._stores
        ]
        ranked.sort(key=lambda s: s["distance"])
        return ranked[: self._limit]
