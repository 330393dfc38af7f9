"""Notification intents: what happens after an order or issue event.

Every intent shows an in-app entry in the NotificationCenter and asks the
delivery queue to fan the event out over the user's enabled channels. Any
failure on the way is logged and surfaced as a warning; it never reaches the
operation that raised the intent.
"""

import structlog

from storefront.notifications.center import NotificationCenter
from storefront.notifications.job import DeliveryJob, NotificationEventType
from storefront.notifications.preference import UserPreferencesStore
from storefront.notifications.queue import NotificationDeliveryQueue
from storefront.notifications.templates import get_template

logger = structlog.get_logger(__name__)


class NotificationEmitter:
    def __init__(
        self,
        queue: NotificationDeliveryQueue,
        preferences: UserPreferencesStore,
        center: NotificationCenter,
    ):
        self.queue = queue
        self.preferences = preferences
        self.center = center

    async def emit(self, order_id: str, user_id: str, event_type: str, context: dict) -> list[DeliveryJob]:
        event_type = NotificationEventType(event_type).value
        context = {**context, "order_id": order_id}

        try:
            template = get_template(event_type)
            rendered = template.render(context)
            self.center.show(
                template.in_app_kind,
                rendered["subject"],
                rendered["summary"],
                action_label="View order",
                action=f"navigate:/orders/{order_id}",
            )

            preferences = await self.preferences.get(user_id)
            return await self.queue.enqueue(order_id, event_type, preferences, context)
        except Exception:
            logger.exception(
                "Failed to queue notification",
                order_id=order_id,
                user_id=user_id,
                event_type=event_type,
            )
            self.center.show_warning(
                "Notification not sent",
                f"We could not queue the {event_type} notification for order {order_id}.",
            )
            return []
