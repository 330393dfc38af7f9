"""Fake SMS adapter: records sent text messages for testing."""

from storefront.notifications.channel.fake import FakeChannelAdapter

SMS_MAX_LENGTH = 160


class FakeSMSAdapter(FakeChannelAdapter):
    """SMS adapter that records messages in memory for test assertions."""

    channel = "sms"
    message_prefix = "sms"

    def build_record(self, recipient: str, payload: dict) -> dict:
        return {"to": recipient, "body": payload.get("body", "")[:SMS_MAX_LENGTH]}

    @property
    def sent_messages(self) -> list[dict]:
        return self.sent
