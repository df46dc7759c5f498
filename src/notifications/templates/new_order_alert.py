"""New order alert: internal notification to the store admin."""

from notifications.templates.names import Audience, EmailTemplate
from shared.money import display


class NewOrderAlertTemplate:
    name = EmailTemplate.ADMIN_NEW_ORDER.value
    audience = Audience.ADMIN.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        return {
            "subject": f"[New Order] #{order_id} - {display(context.get('amount_paid', 0))}",
            "body": (
                f"A new order has been placed.\n\n"
                f"Order ID: {order_id}\n"
                f"Customer: {context.get('customer_name', 'N/A')} <{context.get('customer_email', 'N/A')}>\n"
                f"Items: {context.get('item_count', 0)}\n"
                f"Total: {display(context.get('amount_paid', 0))}\n"
            ),
        }
