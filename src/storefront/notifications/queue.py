"""NotificationDeliveryQueue: fans order events out to channels and delivers them.

``enqueue`` creates one DeliveryJob per channel the user enabled for the
event type. Each channel has its own ready queue drained by a small worker
pool, so a slow channel never holds up the others. A failed send consumes one
attempt and is re-queued after an exponential backoff until the attempt
budget runs out; an unavailable channel fails the job at once. Terminal
outcomes are counted by the ``DeliveryStats`` projection, and terminal jobs
are archived out of the live queue once they pass the retention window.
"""

import asyncio
import random
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.config import Settings
from storefront.domain import storefront
from storefront.exceptions import ChannelUnavailable, DeliveryFailure, NotFoundError
from storefront.notifications.center import NotificationCenter
from storefront.notifications.channel import ChannelRegistry
from storefront.notifications.job import DeliveryJob, JobStatus, NotificationEventType
from storefront.notifications.projections.delivery_stats import DeliveryStats, summarize
from storefront.notifications.templates import get_template, render_for_channel

logger = structlog.get_logger(__name__)


class NotificationDeliveryQueue:
    def __init__(
        self,
        channels: ChannelRegistry,
        *,
        center: NotificationCenter | None = None,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        backoff_cap: float = 300.0,
        backoff_jitter: float = 0.0,
        workers_per_channel: int = 2,
        retention: timedelta = timedelta(hours=24),
        purge_interval: float | None = 300.0,
        domain=storefront,
    ):
        self._channels = channels
        self._center = center
        self._domain = domain
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.backoff_jitter = backoff_jitter
        self.workers_per_channel = workers_per_channel
        self.retention = retention
        self.purge_interval = purge_interval

        self._live: dict[str, str] = {}  # job id -> channel, in enqueue order
        self._ready: dict[str, asyncio.Queue] = {}
        self._workers: list[asyncio.Task] = []
        self._timers: set[asyncio.Task] = set()
        self._purger: asyncio.Task | None = None
        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        channels: ChannelRegistry,
        center: NotificationCenter | None = None,
    ) -> "NotificationDeliveryQueue":
        return cls(
            channels,
            center=center,
            max_attempts=settings.delivery_max_attempts,
            backoff_base=settings.delivery_backoff_base_seconds,
            backoff_cap=settings.delivery_backoff_cap_seconds,
            backoff_jitter=settings.delivery_backoff_jitter,
            workers_per_channel=settings.delivery_workers_per_channel,
            retention=timedelta(seconds=settings.delivery_retention_seconds),
            purge_interval=settings.delivery_purge_interval_seconds or None,
        )

    def _repository(self):
        return self._domain.repository_for(DeliveryJob)

    def _load(self, job_id: str) -> DeliveryJob:
        try:
            return self._repository().get(job_id)
        except ObjectNotFoundError:
            raise NotFoundError("DeliveryJob", job_id) from None

    def backoff_delay(self, attempts: int) -> float:
        """Delay before retry number ``attempts``: base, 2×base, 4×base, ... up to the cap."""
        delay = min(self.backoff_base * 2 ** max(attempts - 1, 0), self.backoff_cap)
        if self.backoff_jitter:
            delay *= 1 + random.uniform(-self.backoff_jitter, self.backoff_jitter)
        return max(delay, 0.0)

    # -------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------
    async def enqueue(self, order_id, event_type, preferences, context=None) -> list[DeliveryJob]:
        """Create a pending job for every channel the user enabled for ``event_type``."""
        event_type = NotificationEventType(event_type).value
        channels = preferences.channels_for(event_type)
        if not channels:
            logger.info(
                "No enabled channels for event type",
                order_id=order_id,
                user_id=preferences.user_id,
                event_type=event_type,
            )
            return []

        context = {**(context or {}), "order_id": order_id}
        rendered = get_template(event_type).render(context)

        jobs = []
        with self._domain.domain_context():
            repo = self._repository()
            for channel in channels:
                job = DeliveryJob.create(
                    order_id=order_id,
                    recipient_id=preferences.user_id,
                    channel=channel,
                    event_type=event_type,
                    payload=render_for_channel(rendered, channel, context),
                    max_attempts=self.max_attempts,
                )
                repo.add(job)
                jobs.append(job)

        for job in jobs:
            self._submit(str(job.id), job.channel)

        logger.info(
            "Delivery jobs queued",
            order_id=order_id,
            event_type=event_type,
            channels=channels,
        )
        return jobs

    async def redeliver(self, job_id: str) -> DeliveryJob:
        """Queue a fresh job with the payload of a failed one."""
        return self.requeue_failed(job_id)

    def requeue_failed(self, job_id: str) -> DeliveryJob:
        """Synchronous form of ``redeliver`` for callers already on the event loop.

        Raises ``NotFoundError`` for an unknown or archived job and
        ``ValidationError`` when the job has not failed.
        """
        with self._domain.domain_context():
            original = self._load(job_id)
            if original.status != JobStatus.FAILED.value:
                raise ValidationError({"status": [f"Only failed jobs can be redelivered, job is {original.status}"]})

            job = DeliveryJob.create(
                order_id=original.order_id,
                recipient_id=original.recipient_id,
                channel=original.channel,
                event_type=original.event_type,
                payload=original.payload_data(),
                max_attempts=self.max_attempts,
                redelivery_of=str(original.id),
            )
            self._repository().add(job)

        self._submit(str(job.id), job.channel)
        logger.info("Failed delivery job requeued", job_id=str(job.id), original_job_id=job_id)
        return job

    def _submit(self, job_id: str, channel: str) -> None:
        self._live[job_id] = channel
        self._outstanding += 1
        self._idle.clear()
        self._ready_queue(channel).put_nowait(job_id)
        if self._purger is None and self.purge_interval:
            self._purger = asyncio.create_task(self._purge_periodically(), name="delivery-purge")

    def _ready_queue(self, channel: str) -> asyncio.Queue:
        if channel not in self._ready:
            ready = asyncio.Queue()
            self._ready[channel] = ready
            for index in range(self.workers_per_channel):
                self._workers.append(asyncio.create_task(self._worker(channel, ready), name=f"delivery-{channel}-{index}"))
        return self._ready[channel]

    # -------------------------------------------------------------------
    # Dispatch loop
    # -------------------------------------------------------------------
    async def _worker(self, channel: str, ready: asyncio.Queue) -> None:
        while True:
            job_id = await ready.get()
            try:
                await self._dispatch(job_id)
            except Exception:
                # The job stays pending and is no longer tracked
                logger.exception("Delivery worker failed to process job", job_id=job_id, channel=channel)
                self._settle()
            finally:
                ready.task_done()

    async def _dispatch(self, job_id: str) -> None:
        with self._domain.domain_context():
            job = self._load(job_id)
        if job.is_terminal:
            self._settle()
            return

        try:
            adapter = self._channels.get(job.channel)
            result = await adapter.send(job.recipient_id, job.payload_data())
        except ChannelUnavailable as exc:
            self._fail_unavailable(job_id, exc)
            return
        except DeliveryFailure as exc:
            error = exc.reason
        except Exception as exc:
            logger.warning("Channel adapter raised an unexpected error", job_id=job_id, channel=job.channel, exc_info=True)
            error = f"{type(exc).__name__}: {exc}"
        else:
            if result.success:
                self._complete(job_id, result.message_id)
                return
            error = result.error or "Delivery failed"

        self._retry_or_fail(job_id, error)

    def _complete(self, job_id: str, message_id: str | None) -> None:
        with self._domain.domain_context():
            job = self._load(job_id)
            job.mark_sent(message_id)
            self._repository().add(job)

        self._settle()
        logger.info("Delivery job sent", job_id=job_id, channel=job.channel, attempts=job.attempts)

    def _retry_or_fail(self, job_id: str, error: str) -> None:
        with self._domain.domain_context():
            job = self._load(job_id)
            delay = self.backoff_delay(job.attempts + 1)
            job.record_failure(error, next_attempt_at=datetime.now(UTC) + timedelta(seconds=delay))
            self._repository().add(job)

        if job.status == JobStatus.FAILED.value:
            self._settle()
            logger.error(
                "Delivery job failed after max attempts",
                job_id=job_id,
                order_id=str(job.order_id),
                channel=job.channel,
                attempts=job.attempts,
                error=error,
            )
            if self._center is not None:
                self._center.show_error(
                    "Notification delivery failed",
                    f"Could not send the {job.event_type} update for order {job.order_id} "
                    f"by {job.channel} after {job.attempts} attempts: {error}",
                    action_label="Retry",
                    action=f"redeliver:{job_id}",
                )
            return

        logger.warning(
            "Delivery attempt failed, retrying",
            job_id=job_id,
            channel=job.channel,
            attempts=job.attempts,
            retry_in=round(delay, 3),
            error=error,
        )
        timer = asyncio.create_task(self._requeue_after(job_id, job.channel, delay))
        self._timers.add(timer)
        timer.add_done_callback(self._timers.discard)

    async def _requeue_after(self, job_id: str, channel: str, delay: float) -> None:
        await asyncio.sleep(delay)
        self._ready_queue(channel).put_nowait(job_id)

    async def _purge_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.purge_interval)
            try:
                self.purge_terminal()
            except Exception:
                logger.exception("Periodic purge of terminal delivery jobs failed")

    def _fail_unavailable(self, job_id: str, exc: ChannelUnavailable) -> None:
        with self._domain.domain_context():
            job = self._load(job_id)
            job.mark_unavailable(str(exc))
            self._repository().add(job)

        self._settle()
        logger.warning("Channel unavailable, failing job without retry", job_id=job_id, channel=job.channel, reason=exc.reason)
        if self._center is not None:
            self._center.show_warning(
                "Notification channel unavailable",
                f"{job.channel} notifications are not configured; "
                f"the {job.event_type} update for order {job.order_id} was not sent by {job.channel}.",
            )

    def _settle(self) -> None:
        self._outstanding -= 1
        if self._outstanding <= 0:
            self._outstanding = 0
            self._idle.set()

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every live job is sent or failed."""
        await asyncio.wait_for(self._idle.wait(), timeout)

    async def stop(self) -> None:
        """Cancel workers, retry timers and the purge task.

        Pending jobs stay pending but are no longer waited on, so ``drain``
        returns at once. Enqueueing again starts fresh workers.
        """
        tasks = [*self._workers, *self._timers, *filter(None, [self._purger])]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers.clear()
        self._timers.clear()
        self._ready.clear()
        self._purger = None
        self._outstanding = 0
        self._idle.set()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_job(self, job_id: str) -> DeliveryJob:
        with self._domain.domain_context():
            return self._load(job_id)

    def jobs_for_order(self, order_id: str) -> list[DeliveryJob]:
        with self._domain.domain_context():
            return self._repository().for_order(order_id)

    def _live_jobs(self) -> list[DeliveryJob]:
        with self._domain.domain_context():
            return [self._load(job_id) for job_id in self._live]

    def get_queue_stats(self) -> dict:
        """Counts of live jobs grouped by status and by channel."""
        jobs = self._live_jobs()
        by_status = {status.value: 0 for status in JobStatus}
        by_channel: dict[str, int] = {}
        for job in jobs:
            by_status[job.status] += 1
            by_channel[job.channel] = by_channel.get(job.channel, 0) + 1
        return {
            "total": len(jobs),
            "by_status": by_status,
            "by_channel": by_channel,
            "retrying": sum(1 for job in jobs if job.status == JobStatus.PENDING.value and job.attempts > 0),
        }

    def get_delivery_stats(self) -> dict:
        with self._domain.domain_context():
            rows = self._domain.repository_for(DeliveryStats)._dao.query.all().items
        return summarize(rows)

    def purge_terminal(self, older_than: timedelta | None = None) -> int:
        """Archive terminal jobs last touched before ``older_than`` ago. Returns how many.

        ``older_than`` defaults to the queue's retention window.
        """
        cutoff = datetime.now(UTC) - (self.retention if older_than is None else older_than)
        purged = 0
        with self._domain.domain_context():
            repo = self._repository()
            for job in [self._load(job_id) for job_id in self._live]:
                if job.is_terminal and job.updated_at <= cutoff:
                    repo.remove(job)
                    del self._live[str(job.id)]
                    purged += 1
        if purged:
            logger.info("Terminal delivery jobs purged", count=purged)
        return purged
