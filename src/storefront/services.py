"""Storefront: the composition root for the order lifecycle subsystem.

Built once per process and handed to whoever needs it (the FastAPI app keeps
it on ``app.state``). All mutable state lives on the services it wires up.
"""

import structlog

from storefront.config import Settings, get_settings
from storefront.domain import storefront
from storefront.issues.tracker import IssueTracker
from storefront.notifications.center import NotificationCenter
from storefront.notifications.channel import ChannelRegistry, build_default_channels
from storefront.notifications.emitter import NotificationEmitter
from storefront.notifications.preference import RepositoryPreferencesStore, UserPreferencesStore
from storefront.notifications.queue import NotificationDeliveryQueue
from storefront.ordering.inventory import FakeInventoryGate, InventoryGate
from storefront.ordering.lifecycle import OrderLifecycleManager
from storefront.ordering.store import OrderStore

logger = structlog.get_logger(__name__)


class Storefront:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        channels: ChannelRegistry | None = None,
        inventory: InventoryGate | None = None,
        preferences: UserPreferencesStore | None = None,
        domain=storefront,
    ):
        self.settings = settings = settings or get_settings()

        self.center = NotificationCenter(
            auto_hide_seconds=settings.notification_auto_hide_seconds,
            error_auto_hide_seconds=settings.notification_error_auto_hide_seconds,
            max_items=settings.notification_max_items,
        )
        self.channels = channels or build_default_channels(settings)
        self.queue = NotificationDeliveryQueue.from_settings(settings, self.channels, center=self.center)
        self.preferences = preferences or RepositoryPreferencesStore(domain)
        self.emitter = NotificationEmitter(self.queue, self.preferences, self.center)

        if inventory is None and settings.inventory_check_enabled:
            inventory = FakeInventoryGate()
        self.inventory = inventory

        self.orders = OrderStore(domain)
        self.issues = IssueTracker(self.orders, self.emitter, domain)
        self.lifecycle = OrderLifecycleManager(
            self.orders,
            self.emitter,
            self.issues,
            inventory=inventory,
            currency=settings.default_currency,
            simulation_delays=settings.workflow_step_delays if settings.workflow_simulation_enabled else None,
            domain=domain,
        )

        # A redeliver that raises (job archived, job not failed) makes the
        # action report failure
        self.center.register_action("redeliver", self.queue.requeue_failed)

    async def shutdown(self) -> None:
        await self.lifecycle.shutdown()
        await self.queue.stop()
        self.center.close()
        logger.info("Storefront services stopped")
