"""
Authenticated doctor identity value object.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DoctorIdentity:
    """Immutable identity of the doctor making a request.

    Built from verified token claims and passed explicitly into the service
    layer.
    """

    doctor_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.doctor_id:
            raise ValueError("doctor_id cannot be empty")
        if not self.email:
            raise ValueError("email cannot be empty")

    def to_claims(self) -> Dict[str, Any]:
        """Claim set embedded in issued tokens (camelCase, as clients expect)."""
        return {
            "email": self.email,
            "doctorId": self.doctor_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "DoctorIdentity":
        return cls(
            doctor_id=claims.get("doctorId", ""),
            email=claims.get("email", ""),
            first_name=claims.get("firstName"),
            last_name=claims.get("lastName"),
        )
