"""Delivery email, sent when an admin marks a shipped order delivered."""

from notifications.templates.names import Audience, EmailTemplate


class DeliveryConfirmationTemplate:
    name = EmailTemplate.DELIVERY_CONFIRMATION.value
    audience = Audience.CUSTOMER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        tracking = context.get("tracking_number")
        carrier = (context.get("carrier") or "").upper()
        shipment = f"Shipment: {' '.join(filter(None, [carrier, tracking]))}\n" if tracking else ""
        order_url = context.get("order_url")
        return {
            "subject": f"Order #{order_id} Delivered",
            "body": (
                f"Your Codebook order #{order_id} ({context.get('item_count', 0)} item(s)) has arrived.\n"
                + shipment
                + (f"Order details: {order_url}\n" if order_url else "")
                + "\nHappy reading! If a book arrived damaged, reply with a photo and we'll replace it."
            ),
        }
