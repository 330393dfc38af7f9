"""Delivery channel port: abstract interface for email, SMS and push dispatch."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class DeliveryChannelAdapter(ABC):
    """Abstract interface for channel adapters.

    The queue may call ``send`` again for a message that was already accepted,
    so adapters must tolerate duplicate sends.
    """

    channel: str

    @abstractmethod
    async def send(self, recipient: str, payload: dict) -> DeliveryResult:
        """Send a rendered message to one recipient.

        Returns a failed ``DeliveryResult`` (or raises ``DeliveryFailure``) for
        transient errors, and raises ``ChannelUnavailable`` when the channel has
        no credentials configured.
        """
        ...
