"""Delivery confirmation template: sent when an order is delivered."""

from storefront.notifications.job import NotificationEventType


class DeliveryConfirmationTemplate:
    event_type = NotificationEventType.DELIVERY_CONFIRMATION.value
    in_app_kind = "success"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id") or "N/A"
        return {
            "subject": f"Order #{order_id} Delivered",
            "body": (
                f"Your order #{order_id} has been delivered.\n\n"
                "If anything is wrong with your order, you can report an issue "
                "from your order page and we'll sort it out."
            ),
            "sms": f"Order #{order_id} delivered. Enjoy!",
            "summary": f"Order #{order_id} has been delivered.",
        }
