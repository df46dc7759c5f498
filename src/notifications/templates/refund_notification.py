"""Customer refund receipt. Amounts in the context are already in display units."""

from notifications.templates.names import Audience, EmailTemplate
from shared.money import display


class RefundNotificationTemplate:
    name = EmailTemplate.ORDER_REFUNDED.value
    audience = Audience.CUSTOMER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        refunded = display(context.get("refund_amount", 0))
        paid = display(context.get("amount_paid", 0))
        partial = refunded != paid
        return {
            "subject": f"Your refund for order #{order_id}",
            "body": (
                f"We've refunded {refunded}"
                + (f" of the {paid} paid" if partial else "")
                + f" for order #{order_id}.\n\n"
                f"Reference: {context.get('refund_id', 'N/A')}\n"
                f"Reason: {context.get('reason') or 'requested_by_customer'}\n\n"
                "Card refunds usually reach your statement within 5-10 business days."
            ),
        }
