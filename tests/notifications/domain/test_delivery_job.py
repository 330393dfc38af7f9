"""Tests for the DeliveryJob aggregate."""

from datetime import UTC, datetime

import pytest
from storefront.exceptions import InvalidTransitionError
from storefront.notifications.events import (
    DeliveryAttemptFailed,
    DeliveryJobFailed,
    DeliveryJobQueued,
    DeliveryJobSent,
)
from storefront.notifications.job import DeliveryJob, JobStatus


def _job(max_attempts=3):
    job = DeliveryJob.create(
        order_id="order-1",
        recipient_id="user-1",
        channel="email",
        event_type="orderConfirmation",
        payload={"subject": "Hi", "body": "Hello"},
        max_attempts=max_attempts,
    )
    return job


class TestCreate:
    def test_starts_pending_with_no_attempts(self):
        job = _job()

        assert job.status == JobStatus.PENDING.value
        assert job.attempts == 0
        assert job.last_error is None
        assert not job.is_terminal

    def test_payload_round_trips(self):
        assert _job().payload_data() == {"subject": "Hi", "body": "Hello"}

    def test_raises_queued(self):
        assert isinstance(_job()._events[-1], DeliveryJobQueued)


class TestOutcomes:
    def test_mark_sent(self):
        job = _job()
        job.mark_sent("email-abc")

        assert job.status == "sent"
        assert job.message_id == "email-abc"
        assert job.is_terminal
        assert isinstance(job._events[-1], DeliveryJobSent)

    def test_failure_consumes_an_attempt(self):
        job = _job()
        retry_at = datetime.now(UTC)
        job.record_failure("SMTP timeout", next_attempt_at=retry_at)

        assert job.status == "pending"
        assert job.attempts == 1
        assert job.last_error == "SMTP timeout"
        assert job.next_attempt_at == retry_at
        assert isinstance(job._events[-1], DeliveryAttemptFailed)

    def test_fails_when_budget_is_spent(self):
        job = _job(max_attempts=3)
        for _ in range(3):
            job.record_failure("SMTP timeout")

        assert job.status == "failed"
        assert job.attempts == 3
        assert job.failed_at is not None
        assert isinstance(job._events[-1], DeliveryJobFailed)
        assert job._events[-1].channel_unavailable is False

    def test_unavailable_channel_does_not_consume_attempts(self):
        job = _job()
        job.mark_unavailable("push: No credentials configured")

        assert job.status == "failed"
        assert job.attempts == 0
        assert job._events[-1].channel_unavailable is True


class TestTerminalJobsAreImmutable:
    @pytest.mark.parametrize(
        "finish",
        [
            lambda job: job.mark_sent("m-1"),
            lambda job: job.mark_unavailable("down"),
            lambda job: [job.record_failure("x") for _ in range(job.max_attempts)],
        ],
    )
    @pytest.mark.parametrize(
        "change",
        [
            lambda job: job.mark_sent("m-2"),
            lambda job: job.record_failure("again"),
            lambda job: job.mark_unavailable("again"),
        ],
    )
    def test_terminal_job_rejects_changes(self, finish, change):
        job = _job()
        finish(job)
        status, attempts = job.status, job.attempts

        with pytest.raises(InvalidTransitionError):
            change(job)

        assert (job.status, job.attempts) == (status, attempts)
        assert job.attempts <= job.max_attempts
