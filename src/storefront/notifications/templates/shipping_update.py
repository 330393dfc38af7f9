"""Shipping update template: sent when an order ships or gets tracking details."""

from storefront.notifications.job import NotificationEventType


class ShippingUpdateTemplate:
    event_type = NotificationEventType.SHIPPING_UPDATES.value
    in_app_kind = "info"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id") or "N/A"
        carrier = context.get("carrier") or "the carrier"
        tracking_number = context.get("tracking_number") or "N/A"
        estimated_delivery = context.get("estimated_delivery") or "soon"
        return {
            "subject": "Your Order Is On Its Way!",
            "body": (
                f"Great news! Your order #{order_id} is on its way.\n\n"
                f"Carrier: {carrier}\n"
                f"Tracking Number: {tracking_number}\n"
                f"Estimated Delivery: {estimated_delivery}\n\n"
                "You can track your package using the tracking number above."
            ),
            "sms": f"Order #{order_id} shipped via {carrier}. Tracking: {tracking_number}",
            "summary": f"Order #{order_id} shipped. Tracking number {tracking_number}.",
        }
