"""Shipping notification template: sent when a label is bought or tracking is recorded."""

from notifications.templates.names import Audience, EmailTemplate


class ShippingNotificationTemplate:
    name = EmailTemplate.SHIPPING_NOTIFICATION.value
    audience = Audience.CUSTOMER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        carrier = (context.get("carrier") or "the carrier").upper()
        tracking_number = context.get("tracking_number", "N/A")
        tracking_url = context.get("tracking_url")
        return {
            "subject": "Your Order Has Shipped!",
            "body": (
                f"Great news! Your order #{order_id} has shipped.\n\n"
                f"Carrier: {carrier}\n"
                f"Tracking Number: {tracking_number}\n"
                + (f"Track your package: {tracking_url}\n" if tracking_url else "")
                + "\nYou can track your package using the tracking number above."
            ),
        }
