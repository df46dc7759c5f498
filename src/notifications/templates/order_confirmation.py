"""Order confirmation template: sent to the customer when an order is created."""

from notifications.templates.names import Audience, EmailTemplate
from shared.money import display


class OrderConfirmationTemplate:
    name = EmailTemplate.ORDER_CONFIRMATION.value
    audience = Audience.CUSTOMER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        customer_name = context.get("customer_name") or "there"
        lines = [
            f"  {item.get('name', item.get('productId'))} x {item.get('quantity')} @ {display(item.get('price', 0))}"
            for item in context.get("items", [])
        ]
        order_url = context.get("order_url")
        return {
            "subject": f"Order #{order_id} Confirmed",
            "body": (
                f"Hi {customer_name},\n\n"
                f"Your order #{order_id} has been confirmed.\n\n"
                + ("\n".join(lines) + "\n\n" if lines else "")
                + f"Order Total: {display(context.get('amount_paid', 0))}\n\n"
                + (f"View your order: {order_url}\n\n" if order_url else "")
                + "We'll notify you once your order ships.\n\n"
                "Thank you for shopping with Codebook!"
            ),
        }
