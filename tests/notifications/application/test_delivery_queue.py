"""Application tests for NotificationDeliveryQueue: fan-out, retry, failure and accounting."""

import asyncio
from datetime import timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.exceptions import DeliveryFailure, NotFoundError
from storefront.notifications.channel import ChannelRegistry, DeliveryChannelAdapter, DeliveryResult
from storefront.notifications.channel.fake_email import FakeEmailAdapter
from storefront.notifications.projections.delivery_stats import DeliveryStats
from storefront.notifications.queue import NotificationDeliveryQueue


class FlakyEmailAdapter(DeliveryChannelAdapter):
    """Raises DeliveryFailure for the first ``failures`` sends."""

    channel = "email"

    def __init__(self, failures=1, error=None):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def send(self, recipient, payload):
        self.calls += 1
        if self.calls <= self.failures:
            if self.error is not None:
                raise self.error
            raise DeliveryFailure(self.channel, "Mailbox busy")
        return DeliveryResult(success=True, message_id=f"flaky-{self.calls}")


class CountingEmailAdapter(DeliveryChannelAdapter):
    """Tracks how many sends run at the same time."""

    channel = "email"

    def __init__(self, latency=0.02):
        self.latency = latency
        self.in_flight = 0
        self.peak = 0

    async def send(self, recipient, payload):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(self.latency)
        self.in_flight -= 1
        return DeliveryResult(success=True, message_id="counted")


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_email_only_user_gets_one_email_job(self, queue, preferences):
        jobs = await queue.enqueue("order-1", "orderConfirmation", preferences(email=True, sms=False))

        assert len(jobs) == 1
        assert jobs[0].channel == "email"
        assert jobs[0].attempts == 0
        assert jobs[0].status == "pending"

    @pytest.mark.asyncio
    async def test_one_job_per_enabled_channel(self, queue, adapters, preferences):
        jobs = await queue.enqueue("order-1", "shippingUpdates", preferences(sms=True, push=True), {"carrier": "DHL"})
        await queue.drain(timeout=2)

        assert sorted(job.channel for job in jobs) == ["email", "push", "sms"]
        assert [queue.get_job(str(job.id)).status for job in jobs] == ["sent", "sent", "sent"]
        assert len(adapters["email"].sent_emails) == 1
        assert len(adapters["sms"].sent_messages) == 1
        assert adapters["push"].sent_pushes[0]["data"] == {"order_id": "order-1"}

    @pytest.mark.asyncio
    async def test_unsubscribed_event_type_creates_nothing(self, queue, preferences):
        pref = preferences()
        pref.update_event_types(statusUpdates=False)

        assert await queue.enqueue("order-1", "statusUpdates", pref) == []
        assert queue.get_queue_stats()["total"] == 0

    @pytest.mark.asyncio
    async def test_unknown_event_type(self, queue, preferences):
        with pytest.raises(ValueError):
            await queue.enqueue("order-1", "newsletter", preferences())

    @pytest.mark.asyncio
    async def test_payload_is_rendered_for_the_channel(self, queue, preferences):
        jobs = await queue.enqueue("order-1", "orderConfirmation", preferences(), {"total_amount": 250.0})
        payload = jobs[0].payload_data()

        assert payload["subject"] == "Order #order-1 Confirmed"
        assert "INR 250.00" in payload["body"]


class TestRetries:
    @pytest.mark.asyncio
    async def test_job_fails_after_max_attempts(self, queue, adapters, center, preferences):
        adapters["email"].configure(should_succeed=False, failure_reason="SMTP 550")

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        job = queue.get_job(str(job.id))
        assert job.status == "failed"
        assert job.attempts == 3
        assert job.last_error == "SMTP 550"
        assert adapters["email"].attempts == 3

        stats = queue.get_delivery_stats()
        assert stats["total"] == 1
        assert stats["by_channel"]["email"]["failed"] == 1
        assert stats["success_rate"] == 0.0

        alert = center.get_by_type("error")[0]
        assert alert.action == f"redeliver:{job.id}"
        assert alert.action_label == "Retry"

    @pytest.mark.asyncio
    async def test_recovers_within_budget(self, queue, adapters, preferences):
        adapters["email"].configure(fail_times=2)

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        job = queue.get_job(str(job.id))
        assert job.status == "sent"
        assert job.attempts == 2
        assert queue.get_delivery_stats()["by_channel"]["email"] == {
            "sent": 1,
            "failed": 0,
            "unavailable": 0,
            "total": 1,
        }

    @pytest.mark.asyncio
    async def test_delivery_failure_exception_is_retried(self, queue_factory, preferences):
        build = queue_factory
        adapter = FlakyEmailAdapter(failures=1)
        queue = build(ChannelRegistry([adapter]))

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        assert queue.get_job(str(job.id)).status == "sent"
        assert adapter.calls == 2

    @pytest.mark.asyncio
    async def test_unexpected_adapter_error_counts_as_a_failure(self, queue_factory, preferences):
        build = queue_factory
        adapter = FlakyEmailAdapter(failures=5, error=RuntimeError("socket closed"))
        queue = build(ChannelRegistry([adapter]), max_attempts=2)

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        job = queue.get_job(str(job.id))
        assert job.status == "failed"
        assert job.attempts == 2
        assert job.last_error == "RuntimeError: socket closed"

    @pytest.mark.asyncio
    async def test_retry_waits_for_backoff(self, queue_factory, adapters, preferences):
        build = queue_factory
        queue = build(backoff_base=0.1, backoff_cap=1.0)
        adapters["email"].configure(fail_times=1)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        assert loop.time() - started >= 0.1

    @pytest.mark.asyncio
    async def test_retrying_jobs_show_in_queue_stats(self, queue_factory, adapters, preferences):
        build = queue_factory
        queue = build(backoff_base=10.0, backoff_cap=10.0)
        adapters["email"].configure(fail_times=1)

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        for _ in range(50):
            if queue.get_job(str(job.id)).attempts:
                break
            await asyncio.sleep(0.01)

        stats = queue.get_queue_stats()
        assert stats["by_status"] == {"pending": 1, "sent": 0, "failed": 0}
        assert stats["retrying"] == 1
        assert stats["by_channel"] == {"email": 1}


class TestBackoff:
    def test_doubles_from_base(self):
        queue = NotificationDeliveryQueue(ChannelRegistry(), backoff_base=1.0, backoff_cap=300.0)
        assert [queue.backoff_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 16.0]

    def test_capped(self):
        queue = NotificationDeliveryQueue(ChannelRegistry(), backoff_base=1.0, backoff_cap=5.0)
        assert queue.backoff_delay(10) == 5.0

    def test_jitter_stays_in_bounds(self):
        queue = NotificationDeliveryQueue(ChannelRegistry(), backoff_base=2.0, backoff_cap=60.0, backoff_jitter=0.5)
        for _ in range(50):
            assert 2.0 <= queue.backoff_delay(2) <= 6.0


class TestUnavailableChannels:
    @pytest.mark.asyncio
    async def test_missing_credentials_fail_fast(self, queue_factory, center, preferences):
        from storefront.notifications.channel.fake_push import FakePushAdapter

        build = queue_factory
        push = FakePushAdapter(credentials="")
        queue = build(ChannelRegistry([FakeEmailAdapter(), push]))

        jobs = await queue.enqueue("order-1", "statusUpdates", preferences(push=True))
        await queue.drain(timeout=2)

        push_job = queue.get_job(str(next(j.id for j in jobs if j.channel == "push")))
        assert push_job.status == "failed"
        assert push_job.attempts == 0
        assert push.attempts == 0

        stats = queue.get_delivery_stats()
        assert stats["by_channel"]["push"] == {"sent": 0, "failed": 1, "unavailable": 1, "total": 1}
        assert stats["by_channel"]["email"]["sent"] == 1
        assert center.get_by_type("warning")[0].title == "Notification channel unavailable"

    @pytest.mark.asyncio
    async def test_unregistered_channel(self, queue_factory, preferences):
        build = queue_factory
        queue = build(ChannelRegistry([FakeEmailAdapter()]))

        jobs = await queue.enqueue("order-1", "statusUpdates", preferences(sms=True))
        await queue.drain(timeout=2)

        sms_job = queue.get_job(str(next(j.id for j in jobs if j.channel == "sms")))
        assert sms_job.status == "failed"
        assert sms_job.attempts == 0


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_slow_channel_does_not_hold_up_others(self, queue, adapters, preferences):
        adapters["sms"].configure(latency=0.5)

        jobs = await queue.enqueue("order-1", "statusUpdates", preferences(sms=True))
        email_id = str(next(j.id for j in jobs if j.channel == "email"))
        sms_id = str(next(j.id for j in jobs if j.channel == "sms"))

        await asyncio.sleep(0.1)
        assert queue.get_job(email_id).status == "sent"
        assert queue.get_job(sms_id).status == "pending"

        await queue.drain(timeout=2)
        assert queue.get_job(sms_id).status == "sent"

    @pytest.mark.asyncio
    async def test_workers_per_channel_bound_concurrency(self, queue_factory, preferences):
        build = queue_factory
        adapter = CountingEmailAdapter()
        queue = build(ChannelRegistry([adapter]), workers_per_channel=2)

        for index in range(6):
            await queue.enqueue(f"order-{index}", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        assert adapter.peak == 2
        assert queue.get_delivery_stats()["total"] == 6

    @pytest.mark.asyncio
    async def test_drain_with_nothing_queued(self, queue):
        await queue.drain(timeout=0.1)

    @pytest.mark.asyncio
    async def test_stop_leaves_pending_jobs_pending(self, queue, adapters, preferences):
        adapters["email"].configure(latency=5.0)

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await asyncio.sleep(0.05)
        await queue.stop()

        assert queue.get_job(str(job.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_drain_returns_after_stop(self, queue, adapters, preferences):
        adapters["email"].configure(latency=5.0)

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await asyncio.sleep(0.05)
        await queue.stop()

        await queue.drain(timeout=0.5)
        assert queue.get_job(str(job.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_enqueue_after_stop_starts_new_workers(self, queue, adapters, preferences):
        await queue.stop()

        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        assert queue.get_job(str(job.id)).status == "sent"


class TestAccounting:
    @pytest.mark.asyncio
    async def test_delivery_total_matches_terminal_jobs(self, queue, adapters, preferences):
        adapters["sms"].configure(should_succeed=False)
        adapters["push"].configure(fail_times=1)

        all_jobs = []
        for index in range(3):
            all_jobs += await queue.enqueue(f"order-{index}", "statusUpdates", preferences(sms=True, push=True))
        await queue.drain(timeout=5)

        statuses = [queue.get_job(str(job.id)).status for job in all_jobs]
        stats = queue.get_delivery_stats()
        assert stats["total"] == sum(1 for s in statuses if s in ("sent", "failed")) == 9
        assert stats["by_status"] == {"sent": 6, "failed": 3}
        assert stats["success_rate"] == 66.67

    @pytest.mark.asyncio
    async def test_attempts_never_exceed_budget(self, queue, adapters, preferences):
        adapters["email"].configure(should_succeed=False)

        jobs = []
        for index in range(4):
            jobs += await queue.enqueue(f"order-{index}", "statusUpdates", preferences())
        await queue.drain(timeout=5)

        assert all(queue.get_job(str(job.id)).attempts == 3 for job in jobs)

    @pytest.mark.asyncio
    async def test_purge_keeps_delivery_stats(self, queue, adapters, preferences):
        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        assert queue.purge_terminal(older_than=timedelta(0)) == 1
        assert queue.get_queue_stats()["total"] == 0
        assert queue.get_delivery_stats()["total"] == 1
        with pytest.raises(NotFoundError):
            queue.get_job(str(job.id))

    @pytest.mark.asyncio
    async def test_purge_skips_recent_and_pending_jobs(self, queue, adapters, preferences):
        adapters["email"].configure(latency=5.0)
        await queue.enqueue("order-1", "statusUpdates", preferences())

        assert queue.purge_terminal(older_than=timedelta(0)) == 0
        assert queue.get_queue_stats()["total"] == 1

    @pytest.mark.asyncio
    async def test_terminal_jobs_are_archived_in_the_background(self, queue_factory, preferences):
        build = queue_factory
        queue = build(retention=timedelta(0), purge_interval=0.02)

        for index in range(5):
            await queue.enqueue(f"order-{index}", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        for _ in range(100):
            if queue.get_queue_stats()["total"] == 0:
                break
            await asyncio.sleep(0.01)

        assert queue.get_queue_stats()["total"] == 0
        assert queue.jobs_for_order("order-0") == []
        assert queue.get_delivery_stats()["total"] == 5

    @pytest.mark.asyncio
    async def test_retention_window_keeps_recent_jobs(self, queue_factory, preferences):
        build = queue_factory
        queue = build(retention=timedelta(hours=1), purge_interval=0.02)

        await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)
        await asyncio.sleep(0.1)

        assert queue.get_queue_stats()["by_status"]["sent"] == 1

    @pytest.mark.asyncio
    async def test_stats_are_projected_from_job_events(self, queue, adapters, preferences):
        adapters["sms"].configure(should_succeed=False)

        await queue.enqueue("order-1", "statusUpdates", preferences(sms=True))
        await queue.drain(timeout=2)

        repo = current_domain.repository_for(DeliveryStats)
        assert repo.get("email").sent == 1
        assert repo.get("sms").failed == 1
        assert repo.get("sms").sent == 0

    @pytest.mark.asyncio
    async def test_stats_outlive_the_queue_that_delivered(self, queue_factory, preferences):
        build = queue_factory
        first = build()
        await first.enqueue("order-1", "statusUpdates", preferences())
        await first.drain(timeout=2)
        await first.stop()

        assert build().get_delivery_stats()["by_channel"]["email"]["sent"] == 1

    def test_empty_stats(self):
        queue = NotificationDeliveryQueue(ChannelRegistry())
        assert queue.get_delivery_stats() == {
            "total": 0,
            "success_rate": 0.0,
            "by_status": {"sent": 0, "failed": 0},
            "by_channel": {},
        }


class TestRedeliver:
    @pytest.mark.asyncio
    async def test_redeliver_failed_job(self, queue, adapters, preferences):
        adapters["email"].configure(should_succeed=False)
        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        adapters["email"].configure()
        retry = await queue.redeliver(str(job.id))
        await queue.drain(timeout=2)

        retry = queue.get_job(str(retry.id))
        assert retry.status == "sent"
        assert retry.redelivery_of == str(job.id)
        assert retry.payload_data() == job.payload_data()
        assert queue.get_job(str(job.id)).status == "failed"

    @pytest.mark.asyncio
    async def test_only_failed_jobs(self, queue, preferences):
        [job] = await queue.enqueue("order-1", "statusUpdates", preferences())
        await queue.drain(timeout=2)

        with pytest.raises(ValidationError):
            await queue.redeliver(str(job.id))

    @pytest.mark.asyncio
    async def test_unknown_job(self, queue):
        with pytest.raises(NotFoundError):
            await queue.redeliver("missing-job")


class TestFromSettings:
    def test_retention_and_purge_interval(self, settings):
        queue = NotificationDeliveryQueue.from_settings(
            settings.model_copy(update={"delivery_retention_seconds": 60.0, "delivery_purge_interval_seconds": 0.0}),
            ChannelRegistry(),
        )

        assert queue.retention == timedelta(seconds=60)
        assert queue.purge_interval is None
