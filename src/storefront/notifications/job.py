"""DeliveryJob aggregate: one queued delivery of an order event over one channel.

A job starts PENDING with zero attempts. Each failed send consumes one attempt;
the job becomes FAILED when the budget runs out, or immediately when the
channel is unavailable. SENT and FAILED are terminal and never change again.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.exceptions import InvalidTransitionError
from storefront.notifications.events import (
    DeliveryAttemptFailed,
    DeliveryJobFailed,
    DeliveryJobQueued,
    DeliveryJobSent,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationChannel(Enum):
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class NotificationEventType(Enum):
    ORDER_CONFIRMATION = "orderConfirmation"
    STATUS_UPDATES = "statusUpdates"
    SHIPPING_UPDATES = "shippingUpdates"
    DELIVERY_CONFIRMATION = "deliveryConfirmation"
    ISSUE_RESOLUTION = "issueResolution"


class JobStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.SENT, JobStatus.FAILED})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class DeliveryJob:
    order_id: Identifier(required=True)
    recipient_id: Identifier(required=True)
    channel: String(choices=NotificationChannel, required=True)
    event_type: String(choices=NotificationEventType, required=True)
    payload: Text(required=True)  # JSON-encoded rendered message

    status: String(choices=JobStatus, default=JobStatus.PENDING.value)
    attempts: Integer(default=0, min_value=0)
    max_attempts: Integer(default=3, min_value=1)
    last_error: Text()
    message_id: String(max_length=255)
    redelivery_of: Identifier()

    next_attempt_at: DateTime()
    created_at: DateTime()
    sent_at: DateTime()
    failed_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create(
        cls,
        order_id,
        recipient_id,
        channel,
        event_type,
        payload,
        max_attempts=3,
        redelivery_of=None,
    ):
        now = datetime.now(UTC)
        job = cls(
            order_id=order_id,
            recipient_id=recipient_id,
            channel=channel,
            event_type=event_type,
            payload=json.dumps(payload),
            status=JobStatus.PENDING.value,
            attempts=0,
            max_attempts=max_attempts,
            redelivery_of=redelivery_of,
            next_attempt_at=now,
            created_at=now,
            updated_at=now,
        )
        job.raise_(
            DeliveryJobQueued(
                job_id=str(job.id),
                order_id=str(order_id),
                recipient_id=str(recipient_id),
                channel=channel,
                event_type=event_type,
                max_attempts=max_attempts,
                queued_at=now,
            )
        )
        return job

    @property
    def is_terminal(self):
        return JobStatus(self.status) in TERMINAL_STATUSES

    def payload_data(self) -> dict:
        return json.loads(self.payload)

    def _assert_pending(self, target_status):
        current = JobStatus(self.status)
        if current is not JobStatus.PENDING:
            raise InvalidTransitionError(current.value, target_status.value)

    def mark_sent(self, message_id=None):
        self._assert_pending(JobStatus.SENT)

        now = datetime.now(UTC)
        self.status = JobStatus.SENT.value
        self.message_id = message_id
        self.sent_at = now
        self.next_attempt_at = None
        self.updated_at = now

        self.raise_(
            DeliveryJobSent(
                job_id=str(self.id),
                order_id=str(self.order_id),
                channel=self.channel,
                attempts=self.attempts,
                message_id=message_id,
                sent_at=now,
            )
        )

    def record_failure(self, error, next_attempt_at=None):
        """Consume one attempt. The job fails for good once the budget is spent."""
        self._assert_pending(JobStatus.FAILED)

        now = datetime.now(UTC)
        self.attempts = self.attempts + 1
        self.last_error = error
        self.updated_at = now

        if self.attempts >= self.max_attempts:
            self._fail(error, now)
            return

        self.next_attempt_at = next_attempt_at
        self.raise_(
            DeliveryAttemptFailed(
                job_id=str(self.id),
                order_id=str(self.order_id),
                channel=self.channel,
                error=error,
                attempts=self.attempts,
                max_attempts=self.max_attempts,
                next_attempt_at=next_attempt_at,
                failed_at=now,
            )
        )

    def mark_unavailable(self, error):
        """Fail without consuming the retry budget."""
        self._assert_pending(JobStatus.FAILED)

        now = datetime.now(UTC)
        self.last_error = error
        self.updated_at = now
        self._fail(error, now, channel_unavailable=True)

    def _fail(self, error, now, channel_unavailable=False):
        self.status = JobStatus.FAILED.value
        self.failed_at = now
        self.next_attempt_at = None

        self.raise_(
            DeliveryJobFailed(
                job_id=str(self.id),
                order_id=str(self.order_id),
                channel=self.channel,
                error=error,
                attempts=self.attempts,
                channel_unavailable=channel_unavailable,
                failed_at=now,
            )
        )


@storefront.repository(part_of=DeliveryJob)
class DeliveryJobRepository:
    def for_order(self, order_id: str) -> list[DeliveryJob]:
        jobs = self._dao.query.filter(order_id=order_id).all().items
        return sorted(jobs, key=lambda job: job.created_at)

    def remove(self, job: DeliveryJob) -> None:
        self._dao.delete(job)
