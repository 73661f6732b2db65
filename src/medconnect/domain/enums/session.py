"""
Session type and status enums.
"""

from enum import Enum
from typing import Optional


class SessionType(str, Enum):
    """How a session is conducted."""

    IN_PERSON = "In-person"
    ONLINE = "Online"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SessionType"]:
        """Case-insensitive lookup; returns None for unknown values."""
        if not value or not isinstance(value, str):
            return None
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


class SessionStatus(str, Enum):
    """Session lifecycle: scheduled -> completed | cancelled."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
