"""Template registry: maps order event types to template classes.

Each template renders the subject, email body, SMS text and a short summary
from event context; ``render_for_channel`` picks the parts a channel needs.
"""

from storefront.notifications.job import NotificationChannel, NotificationEventType
from storefront.notifications.templates.delivery_confirmation import (
    DeliveryConfirmationTemplate,
)
from storefront.notifications.templates.issue_resolution import IssueResolutionTemplate
from storefront.notifications.templates.order_confirmation import OrderConfirmationTemplate
from storefront.notifications.templates.shipping_update import ShippingUpdateTemplate
from storefront.notifications.templates.status_update import StatusUpdateTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationEventType.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    NotificationEventType.STATUS_UPDATES.value: StatusUpdateTemplate,
    NotificationEventType.SHIPPING_UPDATES.value: ShippingUpdateTemplate,
    NotificationEventType.DELIVERY_CONFIRMATION.value: DeliveryConfirmationTemplate,
    NotificationEventType.ISSUE_RESOLUTION.value: IssueResolutionTemplate,
}


def get_template(event_type: str):
    """Look up a template class by event type string."""
    template_cls = TEMPLATE_REGISTRY.get(event_type)
    if template_cls is None:
        raise ValueError(f"No template registered for event type: {event_type}")
    return template_cls


def render_for_channel(rendered: dict, channel: str, context: dict) -> dict:
    """Shape a rendered template into the payload one channel adapter expects."""
    channel = NotificationChannel(channel)
    if channel is NotificationChannel.EMAIL:
        return {"subject": rendered["subject"], "body": rendered["body"]}
    if channel is NotificationChannel.SMS:
        return {"body": rendered["sms"]}
    return {
        "title": rendered["subject"],
        "body": rendered["summary"],
        "data": {"order_id": context.get("order_id")},
    }
