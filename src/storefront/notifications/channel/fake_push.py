"""Fake push notification adapter: records sent pushes for testing."""

from storefront.notifications.channel.fake import FakeChannelAdapter


class FakePushAdapter(FakeChannelAdapter):
    """Push adapter that records notifications in memory for test assertions."""

    channel = "push"
    message_prefix = "push"

    def build_record(self, recipient: str, payload: dict) -> dict:
        return {
            "device_owner": recipient,
            "title": payload.get("title"),
            "body": payload.get("body"),
            "data": payload.get("data", {}),
        }

    @property
    def sent_pushes(self) -> list[dict]:
        return self.sent
