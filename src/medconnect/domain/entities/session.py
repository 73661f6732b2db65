"""Session domain entity: a patient-doctor appointment embedded in its doctor."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..enums.session import SessionStatus, SessionType
from ..errors import InvalidSessionDataError


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Session:
    """Session domain entity.

    ``session_id`` is a logical identifier issued by the application before the
    session is persisted, so it can be handed out (e.g. inside links) without
    depending on any storage-assigned id.
    """

    patient_id: str
    type: SessionType
    date: datetime
    time_slot: str
    duration: int
    session_id: str = field(default_factory=_new_id)
    session_link: str = field(default_factory=_new_id)
    status: SessionStatus = SessionStatus.SCHEDULED
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        if self.duration is None or int(self.duration) <= 0:
            raise InvalidSessionDataError("duration", self.duration)
        if not self.time_slot or not self.time_slot.strip():
            raise InvalidSessionDataError("time_slot", self.time_slot)
