"""Shared behaviour for the in-memory fake channel adapters."""

import asyncio
from uuid import uuid4

import structlog

from storefront.exceptions import ChannelUnavailable
from storefront.notifications.channel.port import DeliveryChannelAdapter, DeliveryResult

logger = structlog.get_logger(__name__)


class FakeChannelAdapter(DeliveryChannelAdapter):
    """Records messages in memory; failures are scripted for tests."""

    channel = "fake"
    message_prefix = "msg"

    def __init__(self, credentials: str | None = "fake-credentials"):
        self.credentials = credentials
        self.sent: list[dict] = []
        self.attempts = 0
        self.should_succeed = True
        self.failure_reason = f"{self.channel} delivery failed"
        self.fail_times = 0
        self.latency = 0.0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str | None = None,
        fail_times: int = 0,
        latency: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing.

        ``fail_times`` makes the next N sends fail before succeeding again.
        """
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason or f"{self.channel} delivery failed"
        self.fail_times = fail_times
        self.latency = latency

    def build_record(self, recipient: str, payload: dict) -> dict:
        return {"to": recipient, **payload}

    async def send(self, recipient: str, payload: dict) -> DeliveryResult:
        if not self.credentials:
            raise ChannelUnavailable(self.channel, "No credentials configured")

        self.attempts += 1
        if self.latency:
            await asyncio.sleep(self.latency)

        if self.fail_times > 0:
            self.fail_times -= 1
            logger.info("Fake send failed", channel=self.channel, recipient=recipient)
            return DeliveryResult(success=False, error=self.failure_reason)
        if not self.should_succeed:
            logger.info("Fake send failed", channel=self.channel, recipient=recipient)
            return DeliveryResult(success=False, error=self.failure_reason)

        message_id = f"{self.message_prefix}-{uuid4().hex[:12]}"
        self.sent.append({"message_id": message_id, **self.build_record(recipient, payload)})
        logger.info("Fake send succeeded", channel=self.channel, recipient=recipient, message_id=message_id)
        return DeliveryResult(success=True, message_id=message_id)

    def reset(self):
        """Clear recorded messages (useful between tests)."""
        self.sent.clear()
        self.attempts = 0
        self.configure()
