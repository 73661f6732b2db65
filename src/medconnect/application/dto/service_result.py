"""Result envelope returned by every service method."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class NotificationOutcome:
    """What happened to one side-effect notification."""

    template: str
    recipient: str
    delivered: bool
    error: Optional[str] = None


@dataclass
class ServiceResult:
    """``{status, message, ...payload}`` envelope.

    ``notifications`` records side-effect dispatch separately from the primary
    outcome; a failed notification never changes ``status``.
    """

    status: int
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    notifications: List[NotificationOutcome] = field(default_factory=list)

    def body(self) -> Dict[str, Any]:
        """JSON body: the message plus the operation-specific payload keys."""
        return {"message": self.message, **self.payload}


def result(status: int, message: str, **payload: Any) -> ServiceResult:
    return ServiceResult(status=status, message=message, payload=payload)
