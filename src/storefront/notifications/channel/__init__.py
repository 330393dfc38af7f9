"""Channel adapter registry: the delivery channels available to the queue.

The registry is built once per process and handed to the delivery queue.
Fake adapters are used by default; real adapters (SendGrid, Twilio, FCM)
are registered by the host in their place.
"""

from storefront.config import Settings
from storefront.exceptions import ChannelUnavailable
from storefront.notifications.channel.port import DeliveryChannelAdapter, DeliveryResult
from storefront.notifications.job import NotificationChannel

__all__ = ["ChannelRegistry", "DeliveryChannelAdapter", "DeliveryResult", "build_default_channels"]


class ChannelRegistry:
    def __init__(self, adapters: list[DeliveryChannelAdapter] | None = None):
        self._adapters: dict[str, DeliveryChannelAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: DeliveryChannelAdapter) -> None:
        channel = NotificationChannel(adapter.channel).value
        self._adapters[channel] = adapter

    def get(self, channel: str) -> DeliveryChannelAdapter:
        """Return the adapter for ``channel``; raises ChannelUnavailable if none is registered."""
        try:
            return self._adapters[channel]
        except KeyError:
            raise ChannelUnavailable(channel, "No adapter registered") from None

    def channels(self) -> list[str]:
        return list(self._adapters)


def build_default_channels(settings: Settings) -> ChannelRegistry:
    """Fake adapters for every channel, carrying the configured credentials."""
    from storefront.notifications.channel.fake_email import FakeEmailAdapter
    from storefront.notifications.channel.fake_push import FakePushAdapter
    from storefront.notifications.channel.fake_sms import FakeSMSAdapter

    return ChannelRegistry(
        [
            FakeEmailAdapter(credentials=settings.email_api_key),
            FakeSMSAdapter(credentials=settings.sms_api_key),
            FakePushAdapter(credentials=settings.push_server_key),
        ]
    )
