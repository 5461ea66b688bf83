from abc import ABC, abstractmethod
from typing import Optional


class MessageSender(ABC):
    """
    Abstract Base Class interface that defines the contract for any outbound
    SMS gateway (Twilio, a test double, a dry-run logger, etc.)
    """

    @abstractmethod
    async def send(self, to: str, body: str) -> Optional[str]:
        """
        Sends one SMS and returns the gateway's delivery receipt (message SID),
        or None when the gateway does not produce one.
        """
        pass
