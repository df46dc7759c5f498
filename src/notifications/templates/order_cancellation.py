"""Cancellation email. The customer gets the cancelled lines back as a receipt."""

from notifications.templates.names import Audience, EmailTemplate
from shared.money import display


class OrderCancellationTemplate:
    name = EmailTemplate.ORDER_CANCELED.value
    audience = Audience.CUSTOMER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        greeting = context.get("customer_name") or "there"
        items = context.get("items") or []
        listing = "".join(f"  - {item.get('name', item.get('id'))} (x{item.get('quantity')})\n" for item in items)
        listing = listing or "  (no items)\n"
        return {
            "subject": f"Order #{order_id} Cancelled",
            "body": (
                f"Hi {greeting},\n\n"
                f"Order #{order_id} was cancelled and its items have been released:\n\n"
                f"{listing}\n"
                f"Amount on the order: {display(context.get('amount_paid', 0))}\n"
                "Any payment taken is returned by a separate refund, which we email you about.\n\n"
                "Didn't expect this? Reply to this email and we'll look into it."
            ),
        }
