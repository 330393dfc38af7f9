"""DeliveryStats: terminal delivery outcomes per channel.

Fed by ``DeliveryJobSent`` and ``DeliveryJobFailed``, so archiving jobs out of
the live queue never changes the counts. A job failed because its channel is
unavailable counts as failed and is also tallied under ``unavailable``.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.notifications.events import DeliveryJobFailed, DeliveryJobSent
from storefront.notifications.job import DeliveryJob


@storefront.projection
class DeliveryStats:
    channel: String(identifier=True, required=True, max_length=20)
    sent: Integer(default=0)
    failed: Integer(default=0)
    unavailable: Integer(default=0)
    updated_at: DateTime()


@storefront.projector(projector_for=DeliveryStats, aggregates=[DeliveryJob])
class DeliveryStatsProjector:
    def _stats_for(self, channel):
        try:
            return current_domain.repository_for(DeliveryStats).get(channel)
        except ObjectNotFoundError:
            return DeliveryStats(channel=channel)

    @on(DeliveryJobSent)
    def on_delivery_job_sent(self, event):
        stats = self._stats_for(event.channel)
        stats.sent = stats.sent + 1
        stats.updated_at = event.sent_at
        current_domain.repository_for(DeliveryStats).add(stats)

    @on(DeliveryJobFailed)
    def on_delivery_job_failed(self, event):
        stats = self._stats_for(event.channel)
        stats.failed = stats.failed + 1
        if event.channel_unavailable:
            stats.unavailable = stats.unavailable + 1
        stats.updated_at = event.failed_at
        current_domain.repository_for(DeliveryStats).add(stats)


def summarize(rows: list[DeliveryStats]) -> dict:
    """Totals, success rate (percent, two decimals) and per-channel counts."""
    sent = sum(row.sent for row in rows)
    failed = sum(row.failed for row in rows)
    total = sent + failed
    return {
        "total": total,
        "success_rate": round(sent / total * 100, 2) if total else 0.0,
        "by_status": {"sent": sent, "failed": failed},
        "by_channel": {
            row.channel: {
                "sent": row.sent,
                "failed": row.failed,
                "unavailable": row.unavailable,
                "total": row.sent + row.failed,
            }
            for row in sorted(rows, key=lambda row: row.channel)
        },
    }
