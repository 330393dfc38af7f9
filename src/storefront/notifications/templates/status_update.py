"""Status update template: sent when an order moves to a new status."""

from storefront.notifications.job import NotificationEventType

STATUS_MESSAGES = {
    "pending": "Your order has been received and is awaiting confirmation.",
    "confirmed": "Your order has been confirmed and is being prepared.",
    "processing": "Your order is being processed and will be shipped soon.",
    "shipped": "Your order is on its way.",
    "delivered": "Your order has been delivered.",
    "cancelled": "Your order has been cancelled.",
    "refunded": "Your refund has been processed.",
}


class StatusUpdateTemplate:
    event_type = NotificationEventType.STATUS_UPDATES.value
    in_app_kind = "info"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id") or "N/A"
        status = context.get("status") or "updated"
        message = STATUS_MESSAGES.get(status, f"Your order status is now {status}.")
        notes = context.get("notes")
        body = f"Order #{order_id}: {message}"
        if notes:
            body += f"\n\nNote: {notes}"
        return {
            "subject": f"Order #{order_id} is {status}",
            "body": body,
            "sms": f"Order #{order_id}: {message}",
            "summary": message,
        }
