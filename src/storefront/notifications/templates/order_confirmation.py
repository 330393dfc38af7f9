"""Order confirmation template: sent when an order is placed."""

from storefront.notifications.job import NotificationEventType


class OrderConfirmationTemplate:
    event_type = NotificationEventType.ORDER_CONFIRMATION.value
    in_app_kind = "success"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id") or "N/A"
        total = context.get("total_amount") or 0.0
        currency = context.get("currency") or "INR"
        item_count = context.get("item_count") or 0
        estimated_delivery = context.get("estimated_delivery") or "within 7 days"
        return {
            "subject": f"Order #{order_id} Confirmed",
            "body": (
                f"Thank you for your order #{order_id}.\n\n"
                f"Items: {item_count}\n"
                f"Order Total: {currency} {total:.2f}\n"
                f"Estimated Delivery: {estimated_delivery}\n\n"
                "We'll notify you as your order progresses."
            ),
            "sms": f"Order #{order_id} placed. Total {currency} {total:.2f}. We'll keep you posted.",
            "summary": f"Order #{order_id} placed successfully ({currency} {total:.2f}).",
        }
