"""
Notification service interface for outbound doctor mail.
"""

from abc import ABC, abstractmethod
from typing import Dict


class NotificationService(ABC):
    """Abstract service for sending templated mail."""

    @abstractmethod
    async def send(self, template: str, recipient: str, variables: Dict[str, str]) -> None:
        """
        Render ``template`` with ``variables`` and deliver it to ``recipient``.

        Args:
            template: Template name (e.g. ``welcomeMail``)
            recipient: Destination address
            variables: Substitutions such as ``Name`` and ``Link``

        Raises:
            NotificationError: If the message could not be delivered
        """
        pass
