"""Fake email adapter: records sent emails for testing."""

from storefront.notifications.channel.fake import FakeChannelAdapter


class FakeEmailAdapter(FakeChannelAdapter):
    """Email adapter that records messages in memory for test assertions."""

    channel = "email"
    message_prefix = "email"

    def build_record(self, recipient: str, payload: dict) -> dict:
        return {
            "to": recipient,
            "subject": payload.get("subject"),
            "body": payload.get("body"),
        }

    @property
    def sent_emails(self) -> list[dict]:
        return self.sent
