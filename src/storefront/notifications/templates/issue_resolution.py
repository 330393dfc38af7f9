"""Issue resolution template: sent when an order issue is reported or resolved."""

from storefront.notifications.job import NotificationEventType


class IssueResolutionTemplate:
    event_type = NotificationEventType.ISSUE_RESOLUTION.value
    in_app_kind = "info"

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id") or "N/A"
        resolution = context.get("resolution") or "We are looking into your issue."
        next_steps = context.get("next_steps")
        body = f"An update on the issue you reported for order #{order_id}:\n\n{resolution}"
        if next_steps:
            body += f"\n\nNext steps: {next_steps}"
        return {
            "subject": f"Update on your issue with order #{order_id}",
            "body": body,
            "sms": f"Order #{order_id} issue update: {resolution}",
            "summary": resolution,
        }
